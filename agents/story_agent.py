"""
Story Agent: breaks a narrative into characters and scene prompts.

The analysis response is untrusted input. It is parsed and validated
against StoryAnalysis before any field is used, and every failure mode
(gateway error, malformed JSON, missing field, wrong type) becomes an
AnalysisError.
"""

import json
from typing import Optional

from pydantic import ValidationError as SchemaValidationError

from agents.gateway import GenerationGateway
from schemas import StoryAnalysis, StoryGenre, StoryStyle, WritingStyle
from utils.error_manager import ErrorManager
from utils.errors import AnalysisError, CredentialError, GenerationError, ValidationError
from utils.llm_utils import parse_llm_json
from utils.logger import get_logger
from utils.prompt_builder import ANALYSIS_SCHEMA, PromptBuilder

logger = get_logger("story_agent")


class StoryAgent:
    """
    Calls the analysis model and returns a validated StoryAnalysis.

    Also hosts the idea-to-story tool, which writes a complete story from a
    one-line idea.
    """

    def __init__(self, gateway: GenerationGateway):
        self.gateway = gateway

    async def analyze(
        self,
        story_text: str,
        num_scenes: int,
        style: StoryStyle,
        notes: Optional[str] = None,
    ) -> StoryAnalysis:
        """
        Analyze a story.

        Args:
            story_text: Narrative to break down (must not be blank)
            num_scenes: Requested scene count (advisory for the model)
            style: Visual style appended to every scene prompt
            notes: Optional extra instructions from the user

        Returns:
            Validated StoryAnalysis

        Raises:
            ValidationError: blank story text (no gateway call is made)
            AnalysisError: gateway failure or invalid response
        """
        if not story_text or not story_text.strip():
            raise ValidationError("Please enter a story or upload a document.")
        if num_scenes < 1:
            raise ValidationError("The number of scenes must be at least 1.")

        prompt = PromptBuilder.build_analysis_prompt(story_text, num_scenes, style, notes)

        try:
            raw = await self.gateway.analyze_story(prompt, ANALYSIS_SCHEMA)
        except CredentialError as e:
            raise AnalysisError(f"Story analysis failed: {e.message}") from e
        except Exception as e:
            ErrorManager.log_error("StoryAgent", "Story analysis call failed", f"{type(e).__name__}: {e}")
            raise AnalysisError("An error occurred while analyzing the story. Please try again.") from e

        analysis = self.parse_analysis(raw)
        if len(analysis.scenes) > num_scenes:
            logger.warning(f"Model returned {len(analysis.scenes)} scenes (requested {num_scenes})")
        logger.info(f"Analysis: {len(analysis.characters)} characters, {len(analysis.scenes)} scenes")
        return analysis

    @staticmethod
    def parse_analysis(raw: str) -> StoryAnalysis:
        """Parse and validate the raw analysis response text."""
        try:
            data = parse_llm_json(raw or "")
        except json.JSONDecodeError as e:
            logger.error(f"Analysis response is not JSON: {e}")
            raise AnalysisError("The story analysis returned malformed data. Please try again.") from e

        if not isinstance(data, dict):
            raise AnalysisError("The story analysis returned malformed data. Please try again.")

        try:
            return StoryAnalysis.model_validate(data)
        except SchemaValidationError as e:
            logger.error(f"Analysis response violates schema: {e.error_count()} error(s)")
            raise AnalysisError("The story analysis returned incomplete data. Please try again.") from e

    async def generate_story(
        self,
        idea: str,
        genre: StoryGenre,
        writing_style: WritingStyle,
        length: int = 1500,
    ) -> str:
        """
        Write a complete story from a short idea.

        Raises:
            ValidationError: blank idea
            GenerationError: gateway failure or empty response
        """
        if not idea or not idea.strip():
            raise ValidationError("Please enter an idea for the story.")

        prompt = PromptBuilder.build_story_prompt(idea.strip(), genre, writing_style, length)
        logger.info(f"Writing story: {genre.id} / {writing_style.id} / ~{length} chars")

        try:
            story = await self.gateway.generate_text(prompt)
        except Exception as e:
            ErrorManager.log_error("StoryAgent", "Story writing call failed", f"{type(e).__name__}: {e}")
            raise GenerationError("An error occurred while writing the story. Please try again.") from e

        if not story or not story.strip():
            raise GenerationError("The story generator returned no text. Please try again.")
        return story.strip()
