"""
Unit tests for StoryAgent: analysis parsing/validation and story writing.
"""
import json

import pytest

from agents.story_agent import StoryAgent
from conftest import analysis_json
from schemas import StoryGenre, WritingStyle
from utils.error_manager import ErrorManager
from utils.errors import AnalysisError, GenerationError, ValidationError
from utils.llm_utils import strip_code_fence


class TestParseAnalysis:

    def test_valid_response(self):
        analysis = StoryAgent.parse_analysis(analysis_json())
        assert [c.name for c in analysis.characters] == ["Lina"]
        assert [s.scene_number for s in analysis.scenes] == [1, 2, 3]

    def test_fenced_response(self):
        analysis = StoryAgent.parse_analysis(f"```json\n{analysis_json()}\n```")
        assert len(analysis.scenes) == 3

    @pytest.mark.parametrize("raw", [
        "not json at all",
        "[]",
        json.dumps({"characters": []}),
        json.dumps({"characters": [{"name": "Lina"}], "scenes": []}),
        json.dumps({"characters": [], "scenes": [{"sceneNumber": "one", "prompt": "p"}]}),
        "",
    ])
    def test_malformed_response(self, raw):
        with pytest.raises(AnalysisError):
            StoryAgent.parse_analysis(raw)


class TestStripCodeFence:

    def test_plain(self):
        assert strip_code_fence(' {"a": 1} ') == '{"a": 1}'

    def test_unterminated_fence(self):
        assert strip_code_fence('```json\n{"a": 1}') == '{"a": 1}'


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_prompt_carries_inputs(self, gateway, pixar):
        agent = StoryAgent(gateway)
        await agent.analyze("A girl finds a lighthouse.", 3, pixar, notes="keep it gentle")

        prompt = gateway.analysis_calls[0]
        assert "A girl finds a lighthouse." in prompt
        assert "3 key scenes" in prompt
        assert "in Pixar style" in prompt
        assert "keep it gentle" in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n  "])
    async def test_blank_story_makes_no_call(self, gateway, pixar, text):
        with pytest.raises(ValidationError):
            await StoryAgent(gateway).analyze(text, 3, pixar)
        assert gateway.analysis_calls == []

    @pytest.mark.asyncio
    async def test_gateway_failure_is_analysis_error(self, gateway, pixar):
        gateway.analysis_error = RuntimeError("503 unavailable")
        with pytest.raises(AnalysisError):
            await StoryAgent(gateway).analyze("story", 3, pixar)
        assert ErrorManager.get_recent_errors()[0]["service"] == "StoryAgent"

    @pytest.mark.asyncio
    async def test_scene_count_is_advisory(self, gateway, pixar):
        analysis = await StoryAgent(gateway).analyze("story", 1, pixar)
        assert len(analysis.scenes) == 3


class TestGenerateStory:

    @pytest.mark.asyncio
    async def test_generate_story(self, gateway):
        genre = StoryGenre(id="fantasy", label="Fantasy")
        writing = WritingStyle(id="poetic", label="Poetic")
        story = await StoryAgent(gateway).generate_story("a lonely lighthouse", genre, writing, 800)

        assert story == gateway.story
        prompt = gateway.text_calls[0]
        assert "Fantasy" in prompt and "Poetic" in prompt and "800" in prompt

    @pytest.mark.asyncio
    async def test_blank_idea(self, gateway):
        genre = StoryGenre(id="fantasy", label="Fantasy")
        writing = WritingStyle(id="poetic", label="Poetic")
        with pytest.raises(ValidationError):
            await StoryAgent(gateway).generate_story("  ", genre, writing)
        assert gateway.text_calls == []

    @pytest.mark.asyncio
    async def test_empty_response(self, gateway):
        gateway.story = "   "
        genre = StoryGenre(id="drama", label="Drama")
        writing = WritingStyle(id="realistic", label="Realistic")
        with pytest.raises(GenerationError):
            await StoryAgent(gateway).generate_story("idea", genre, writing)
