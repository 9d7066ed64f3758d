"""
Tests for story analysis and the character portrait fan-out.
"""
import asyncio

import pytest

from conftest import ImageStep, analysis_json, make_image
from utils.errors import AnalysisError, GenerationError, ValidationError


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_one_character_three_scenes(self, pipeline, gateway, pixar, square):
        characters, scenes = await pipeline.analyze(
            story_text="A girl finds a lighthouse.", desired_scene_count=3, style=pixar
        )

        # portraits are requested only after the batch is in place
        assert [c.name for c in characters] == ["Lina"]
        assert characters[0].loading is True
        assert characters[0].image is None
        assert [s.scene_number for s in scenes] == [1, 2, 3]
        assert all(s.prompt.endswith("in Pixar style") for s in scenes)
        assert all(s.aspect_ratio == square for s in scenes)
        assert all(s.image is None and s.video_uri is None for s in scenes)
        assert all(not s.image_loading and not s.video_loading for s in scenes)

        await pipeline.join_character_images()
        lina = pipeline.store.characters[0]
        assert lina.loading is False
        assert lina.image == gateway.default_image
        assert pipeline.store.is_loading is False
        assert len(gateway.image_calls) == 1

    @pytest.mark.asyncio
    async def test_scenes_copy_current_global_ratio(self, pipeline, cinematic):
        pipeline.set_aspect_ratio(cinematic)
        _, scenes = await pipeline.analyze_and_render(story_text="story")
        assert all(s.aspect_ratio.value == "21:9" for s in scenes)

        # later global changes never touch existing scenes
        pipeline.set_aspect_ratio(pipeline.store.aspect_ratio.model_copy(update={"value": "9:16"}))
        assert all(s.aspect_ratio.value == "21:9" for s in pipeline.store.scenes)

    @pytest.mark.asyncio
    async def test_portrait_prompt_uses_style_and_ratio(self, pipeline, gateway, pixar, portrait):
        pipeline.set_aspect_ratio(portrait)
        await pipeline.analyze_and_render(story_text="story", style=pixar)
        text = gateway.image_calls[0][-1]
        assert "Lina" in text and "red scarf" in text
        assert "Pixar" in text and "9:16" in text

    @pytest.mark.asyncio
    async def test_blank_story_keeps_existing_batch(self, pipeline, gateway):
        await pipeline.analyze_and_render(story_text="story")
        before = list(pipeline.store.characters)
        gateway.analysis_calls.clear()

        with pytest.raises(ValidationError):
            await pipeline.analyze(story_text="   ")

        assert gateway.analysis_calls == []
        assert pipeline.store.characters == before
        assert isinstance(pipeline.store.last_error, ValidationError)

    @pytest.mark.asyncio
    async def test_rejected_scene_count_leaves_inputs(self, pipeline, gateway):
        pipeline.set_story_text("kept story")

        with pytest.raises(ValidationError):
            await pipeline.analyze(story_text="new story", desired_scene_count=0)

        assert pipeline.store.num_scenes == 3
        assert pipeline.store.story_text == "kept story"
        assert gateway.analysis_calls == []

        await pipeline.analyze_and_render()
        assert len(pipeline.store.scenes) == 3

    @pytest.mark.asyncio
    async def test_failure_leaves_store_empty(self, pipeline, gateway):
        await pipeline.analyze_and_render(story_text="story")
        assert pipeline.store.scenes

        gateway.analysis = "```json\n{\"characters\": [] }\n```"
        with pytest.raises(AnalysisError):
            await pipeline.analyze(story_text="another story")

        assert pipeline.store.characters == []
        assert pipeline.store.scenes == []
        assert pipeline.store.is_loading is False
        assert pipeline.store.error

    @pytest.mark.asyncio
    async def test_new_analysis_clears_previous_error(self, pipeline, gateway):
        gateway.analysis_error = RuntimeError("boom")
        with pytest.raises(AnalysisError):
            await pipeline.analyze(story_text="story")

        gateway.analysis_error = None
        await pipeline.analyze_and_render(story_text="story")
        assert pipeline.store.error is None


class TestCharacterFanout:

    @pytest.mark.asyncio
    async def test_join_all_isolates_failures(self, pipeline, gateway):
        gateway.analysis = analysis_json(characters=[
            {"name": "Lina", "description": "red scarf"},
            {"name": "Omar", "description": "old keeper"},
            {"name": "Tala", "description": "a cat"},
        ])
        gateway.image_rules = {"Omar": ImageStep(error=GenerationError("quota"))}

        await pipeline.analyze_and_render(story_text="story")

        chars = pipeline.store.characters
        assert [c.loading for c in chars] == [False, False, False]
        assert chars[0].image is not None
        assert chars[1].image is None
        assert chars[2].image is not None
        assert pipeline.store.is_loading is False

    @pytest.mark.asyncio
    async def test_no_image_in_response_is_failure(self, pipeline, gateway):
        gateway.image_rules = {"Lina": ImageStep(result=None)}
        await pipeline.analyze_and_render(story_text="story")
        assert pipeline.store.characters[0].image is None
        assert pipeline.store.characters[0].loading is False

    @pytest.mark.asyncio
    async def test_results_apply_in_completion_order(self, pipeline, gateway):
        gateway.analysis = analysis_json(characters=[
            {"name": "Lina", "description": "red scarf"},
            {"name": "Omar", "description": "old keeper"},
        ])
        slow = asyncio.Event()
        gateway.image_rules = {"Lina": ImageStep(result=make_image(color=(1, 1, 1)), gate=slow)}

        await pipeline.analyze(story_text="story")
        for _ in range(20):
            await asyncio.sleep(0)

        chars = pipeline.store.characters
        assert chars[0].loading is True
        assert chars[1].loading is False and chars[1].image is not None
        # the global indicator waits for every portrait
        assert pipeline.store.is_loading is True

        slow.set()
        await pipeline.join_character_images()
        assert pipeline.store.characters[0].image == make_image(color=(1, 1, 1))
        assert pipeline.store.is_loading is False

    @pytest.mark.asyncio
    async def test_stale_batch_results_are_dropped(self, pipeline, gateway):
        gate = asyncio.Event()
        gateway.image_rules = {"Lina": ImageStep(result=make_image(), gate=gate)}

        await pipeline.analyze(story_text="story")
        await asyncio.sleep(0)
        pipeline.use_generated_story("a brand new story")
        assert pipeline.store.characters == []

        gate.set()
        await pipeline.join_character_images()
        assert pipeline.store.characters == []
        assert pipeline.store.error is None
        assert pipeline.store.is_loading is False
