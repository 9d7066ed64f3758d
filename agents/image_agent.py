"""
Image Agent: character portraits and scene stills.

Portraits are text-only requests. Scene stills attach every existing
character portrait as a reference image so the cast stays consistent
across scenes.
"""

from typing import Sequence

from agents.gateway import GenerationGateway
from schemas import AspectRatio, Character, ImageData, Scene, StoryStyle
from utils.error_manager import ErrorManager
from utils.errors import GenerationError
from utils.logger import get_logger
from utils.prompt_builder import PromptBuilder

logger = get_logger("image_agent")


class ImageAgent:
    """
    이미지 생성 에이전트

    A call fails when the gateway raises or when its response carries no
    inline image; both surface as GenerationError scoped to the item.
    """

    def __init__(self, gateway: GenerationGateway):
        self.gateway = gateway

    async def generate_character_image(
        self,
        character: Character,
        style: StoryStyle,
        aspect_ratio: AspectRatio,
    ) -> ImageData:
        """
        Generate a portrait for one character.

        Args:
            character: Character record (name + description are used)
            style: Visual style
            aspect_ratio: Ratio captured when the action was invoked

        Returns:
            Generated image
        """
        prompt = PromptBuilder.build_character_prompt(character, style, aspect_ratio)
        logger.info(f"Generating portrait for {character.name}...")
        return await self._generate([prompt], scope=character.name)

    async def generate_scene_image(self, scene: Scene, characters: Sequence[Character]) -> ImageData:
        """
        Generate the still for a scene at the scene's own aspect ratio.

        Args:
            scene: Scene record
            characters: Current cast; those with a portrait become references

        Returns:
            Generated image
        """
        parts = PromptBuilder.build_scene_parts(scene, characters)
        references = len(parts) - 1
        logger.info(
            f"Generating Scene {scene.scene_number} ({scene.aspect_ratio.value}, "
            f"{references} character reference(s))..."
        )
        return await self._generate(parts, scope=f"scene {scene.scene_number}")

    async def _generate(self, parts, scope: str) -> ImageData:
        try:
            image = await self.gateway.generate_image(parts)
        except Exception as e:
            ErrorManager.log_error("ImageAgent", f"Image generation failed for {scope}", f"{type(e).__name__}: {e}")
            raise GenerationError(f"Image generation failed for {scope}: {e}", scope=scope) from e

        if image is None:
            ErrorManager.log_error("ImageAgent", f"No image data returned for {scope}", severity="warning")
            raise GenerationError(f"No image data returned for {scope}.", scope=scope)
        return image
