"""
Prompt builder for the Gemini / Veo calls.

The text templates are free-form natural language; only their inputs are
fixed. Multimodal requests are built as an ordered list of parts where each
part is either an ImageData (inline reference image) or a str (text).
"""

from typing import Dict, List, Optional, Sequence, Union

from schemas import AspectRatio, Character, ImageData, Scene, StoryGenre, StoryStyle, WritingStyle

Part = Union[ImageData, str]


# Structured-output schema for the analysis call. The gateway converts it to
# the SDK's Schema type.
ANALYSIS_SCHEMA: Dict = {
    "type": "object",
    "properties": {
        "characters": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "description": {"type": "string"},
                },
                "required": ["name", "description"],
            },
        },
        "scenes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "sceneNumber": {"type": "integer"},
                    "prompt": {"type": "string"},
                },
                "required": ["sceneNumber", "prompt"],
            },
        },
    },
    "required": ["characters", "scenes"],
}


class PromptBuilder:
    """Builds every prompt the pipeline sends to the gateway."""

    @staticmethod
    def build_analysis_prompt(
        story_text: str,
        num_scenes: int,
        style: StoryStyle,
        notes: Optional[str] = None,
    ) -> str:
        """
        Story breakdown prompt: characters with visual descriptions and
        ``num_scenes`` scene prompts.
        """
        notes_block = ""
        if notes and notes.strip():
            notes_block = f"\nIMPORTANT ADDITIONAL NOTES:\n{notes.strip()}\n"

        return f"""
Read the following story carefully. Your task is to:
1. Identify the main characters and give each one a detailed visual description suitable for generating a portrait.
2. Split the story into {num_scenes} key scenes.
3. For each scene, write a detailed, creative image-generation prompt. The prompt must describe the location, the action,
   the characters present, a cinematic camera angle and the lighting. Every prompt must end with the phrase
   " in {style.label} style".
{notes_block}
STORY:
---
{story_text}
---
"""

    @staticmethod
    def build_character_prompt(character: Character, style: StoryStyle, aspect_ratio: AspectRatio) -> str:
        """Portrait prompt for one character."""
        return (
            f"Character portrait of {character.name}, {character.description}, "
            f"in {style.label} style. Create the image with an aspect ratio of {aspect_ratio.value}."
        )

    @staticmethod
    def build_scene_parts(scene: Scene, characters: Sequence[Character]) -> List[Part]:
        """
        Multimodal request for a scene still.

        Order:
        1. every character portrait that exists, in list order
        2. one text part with the scene prompt and the scene's own ratio
        """
        parts: List[Part] = [c.image for c in characters if c.image is not None]
        parts.append(
            f"IMPORTANT INSTRUCTION: the final image MUST be generated with a strict aspect ratio of "
            f"{scene.aspect_ratio.value}. The image content is: {scene.prompt}"
        )
        return parts

    @staticmethod
    def build_animation_prompt(scene: Scene) -> str:
        """Veo instruction derived from the scene prompt."""
        return (
            "Animate the characters in this scene with natural, fluid movements. "
            "Make them blink, move their heads, or perform subtle actions matching the scene context: "
            f"{scene.prompt}. Keep the background consistent."
        )

    @staticmethod
    def build_story_prompt(idea: str, genre: StoryGenre, writing_style: WritingStyle, length: int) -> str:
        """Prompt for the idea-to-story tool."""
        return f"""
Write a "{genre.label}" story in a "{writing_style.label}" writing style.
The story should be about {length} characters long.
The main idea of the story is: "{idea}".
Make sure the story is complete, with a beginning, a middle and an end.
"""
