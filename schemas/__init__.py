"""
STORYFRAME Data Models (Pydantic Schemas)
"""

from .models import (
    ImageData,
    AspectRatio,
    StoryStyle,
    StoryGenre,
    WritingStyle,
    Character,
    Scene,
    AnalyzedCharacter,
    AnalyzedScene,
    StoryAnalysis,
    ProjectSnapshot,
    VideoJobState,
    parse_ratio,
)

__all__ = [
    "ImageData",
    "AspectRatio",
    "StoryStyle",
    "StoryGenre",
    "WritingStyle",
    "Character",
    "Scene",
    "AnalyzedCharacter",
    "AnalyzedScene",
    "StoryAnalysis",
    "ProjectSnapshot",
    "VideoJobState",
    "parse_ratio",
]
