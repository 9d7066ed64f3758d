"""
STORYFRAME Entity State Store

In-memory session state: the character and scene batches plus the session
inputs (story text, notes, style, global aspect ratio) and the global
loading/error indicators.

All item mutations go through index-scoped updates that replace exactly one
record and leave every other record object untouched. The store has no locks;
it relies on the single asyncio event loop for one-writer-at-a-time per
index. Mutating it from OS threads requires per-index locking.
"""

from typing import List, Optional

from schemas import (
    AspectRatio,
    Character,
    ProjectSnapshot,
    Scene,
    StoryStyle,
)
from utils.constants import ASPECT_RATIOS, STORY_STYLES
from utils.errors import StoryframeError, ValidationError


DEFAULT_STYLE = StoryStyle(id=STORY_STYLES[0][0], label=STORY_STYLES[0][1])
DEFAULT_ASPECT_RATIO = AspectRatio(label=ASPECT_RATIOS[0][0], value=ASPECT_RATIOS[0][1])


class ProjectStore:
    """Single source of truth for rendering and export."""

    def __init__(self, num_scenes: int = 3):
        self.story_text: str = ""
        self.notes: str = ""
        self.num_scenes: int = num_scenes
        self.story_style: StoryStyle = DEFAULT_STYLE
        self.aspect_ratio: AspectRatio = DEFAULT_ASPECT_RATIO

        self.characters: List[Character] = []
        self.scenes: List[Scene] = []

        # global indicators
        self.is_loading: bool = False
        self.loading_message: str = ""
        self.error: Optional[str] = None
        self.last_error: Optional[StoryframeError] = None

        # bumped on every whole-batch replacement
        self.batch_id: int = 0

    # ─── batch replacement ────────────────────────────────

    def replace_batch(self, characters: List[Character], scenes: List[Scene]) -> int:
        """Replace both collections at once and start a new batch."""
        self.characters = list(characters)
        self.scenes = list(scenes)
        self.batch_id += 1
        return self.batch_id

    def clear_batch(self) -> int:
        return self.replace_batch([], [])

    def load_snapshot(self, snapshot: ProjectSnapshot) -> int:
        """Replace the whole session with an imported snapshot."""
        self.story_text = snapshot.story_text
        self.notes = snapshot.notes
        self.num_scenes = snapshot.num_scenes
        self.story_style = snapshot.story_style
        self.aspect_ratio = snapshot.aspect_ratio
        self.clear_error()
        return self.replace_batch(snapshot.characters, snapshot.scenes)

    def snapshot(self) -> ProjectSnapshot:
        return ProjectSnapshot(
            story_text=self.story_text,
            notes=self.notes,
            num_scenes=self.num_scenes,
            story_style=self.story_style,
            aspect_ratio=self.aspect_ratio,
            characters=list(self.characters),
            scenes=list(self.scenes),
        )

    # ─── index-scoped access ──────────────────────────────

    def character_at(self, index: int) -> Character:
        if not 0 <= index < len(self.characters):
            raise ValidationError(f"No character at index {index}")
        return self.characters[index]

    def scene_at(self, index: int) -> Scene:
        if not 0 <= index < len(self.scenes):
            raise ValidationError(f"No scene at index {index}")
        return self.scenes[index]

    def update_character(self, index: int, **changes) -> Character:
        """Replace the character at ``index`` with a copy carrying ``changes``."""
        updated = self.character_at(index).model_copy(update=changes)
        self.characters[index] = updated
        return updated

    def update_scene(self, index: int, **changes) -> Scene:
        """Replace the scene at ``index`` with a copy carrying ``changes``.

        A scene without a still never keeps a video reference.
        """
        updated = self.scene_at(index).model_copy(update=changes)
        if updated.image is None and updated.video_uri is not None:
            updated = updated.model_copy(update={"video_uri": None})
        self.scenes[index] = updated
        return updated

    # ─── indicators ───────────────────────────────────────

    def set_loading(self, message: str = "") -> None:
        self.is_loading = True
        self.loading_message = message

    def clear_loading(self) -> None:
        self.is_loading = False
        self.loading_message = ""

    def report(self, error: StoryframeError) -> None:
        self.error = error.message
        self.last_error = error

    def clear_error(self) -> None:
        self.error = None
        self.last_error = None
