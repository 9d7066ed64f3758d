"""
STORYFRAME 통합 파이프라인

Session-level orchestrator. Owns the ProjectStore and sequences:

1. analyze: story text -> characters + scenes (whole-batch replacement)
2. character portrait fan-out (starts automatically after analysis)
3. per-scene still generation (user-triggered)
4. per-scene video generation with polling (user-triggered)

Error policy:
- Batch-level failures (ValidationError, AnalysisError, ProjectImportError)
  are surfaced on the store and re-raised.
- Per-item failures are caught here, turned into item-scoped state plus one
  session message naming the item, and reported as a False return. They
  never affect siblings or unrelated in-flight work.

There is no cancellation and no single-flight guard: re-invoking an action
for an item whose previous call is still pending races with it, and the
last completion wins.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

from agents import (
    CharacterManager,
    CredentialProvider,
    EnvCredentialProvider,
    GeminiGateway,
    GenerationGateway,
    ImageAgent,
    SceneOrchestrator,
    StoryAgent,
    VideoAgent,
)
from agents.video_agent import Sleep, VideoJob, with_api_key
from config import get_session_defaults, load_settings
from schemas import (
    AspectRatio,
    Character,
    ImageData,
    ProjectSnapshot,
    Scene,
    StoryGenre,
    StoryStyle,
    WritingStyle,
)
from store import ProjectStore
from utils import image_utils, project_io
from utils.errors import (
    CredentialError,
    DecodeError,
    GenerationError,
    StoryframeError,
    ValidationError,
)
from utils.logger import get_logger
from utils.text_extract import extract_story_text

logger = get_logger("pipeline")


class StoryframePipeline:
    """
    STORYFRAME 통합 파이프라인

    All agents share one gateway and one credential provider.
    """

    def __init__(
        self,
        gateway: Optional[GenerationGateway] = None,
        credentials: Optional[CredentialProvider] = None,
        store: Optional[ProjectStore] = None,
        settings: Optional[Dict] = None,
        sleep: Optional[Sleep] = None,
    ):
        """
        Initialize pipeline.

        Args:
            gateway: Generation gateway (default: GeminiGateway)
            credentials: API key provider (default: GOOGLE_API_KEY from env)
            store: Existing session state (default: a new empty store)
            settings: Settings dict (default: config.load_settings())
            sleep: Polling sleep for video generation (default: asyncio.sleep)
        """
        self.settings = settings or load_settings()
        self.credentials = credentials or EnvCredentialProvider()
        self.gateway = gateway or GeminiGateway(self.credentials, self.settings["models"])
        self.store = store or ProjectStore(num_scenes=get_session_defaults(self.settings)["num_scenes"])

        video_config = self.settings["video"]
        self.story_agent = StoryAgent(self.gateway)
        self.image_agent = ImageAgent(self.gateway)
        self.video_agent = VideoAgent(
            self.gateway,
            self.credentials,
            poll_interval=video_config["poll_interval_sec"],
            resolution=video_config["resolution"],
            sleep=sleep or asyncio.sleep,
        )
        self.character_manager = CharacterManager(self.image_agent)
        self.scene_orchestrator = SceneOrchestrator(self.image_agent, self.video_agent)

        self._fanout_task: Optional[asyncio.Task] = None

    # =================================================================
    # Error surfacing
    # =================================================================

    def _surface(self, error: StoryframeError) -> None:
        logger.error(error.message)
        self.store.report(error)

    @property
    def video_jobs(self) -> Dict[int, VideoJob]:
        return self.scene_orchestrator.video_jobs

    # =================================================================
    # Session inputs
    # =================================================================

    def set_story_text(self, text: str) -> None:
        self.store.story_text = text

    def set_notes(self, notes: str) -> None:
        self.store.notes = notes

    def set_num_scenes(self, num_scenes: int) -> None:
        if num_scenes < 1:
            raise ValidationError("The number of scenes must be at least 1.")
        self.store.num_scenes = num_scenes

    def set_story_style(self, style: StoryStyle) -> None:
        self.store.story_style = style

    def set_aspect_ratio(self, aspect_ratio: AspectRatio) -> None:
        """Change the global default ratio. Existing scenes keep their own."""
        self.store.aspect_ratio = aspect_ratio

    # =================================================================
    # Story writing / document import
    # =================================================================

    async def generate_story(
        self,
        idea: str,
        genre: StoryGenre,
        writing_style: WritingStyle,
        length: Optional[int] = None,
    ) -> Optional[str]:
        """Idea-to-story tool. Returns the story, or None on failure."""
        length = length or get_session_defaults(self.settings)["story_length"]
        try:
            story = await self.story_agent.generate_story(idea, genre, writing_style, length)
        except StoryframeError as e:
            self._surface(e)
            return None
        self.store.clear_error()
        return story

    def use_generated_story(self, story: str) -> None:
        """Adopt a written story as the narrative; drops the current batch."""
        self.store.story_text = story
        self.store.clear_batch()
        self.store.clear_loading()
        self.store.clear_error()

    def load_story_document(self, data: bytes, filename: Optional[str] = None) -> bool:
        """Extract narrative text from a PDF or text file into story_text."""
        # a pending portrait fan-out keeps its own loading message
        was_loading, message = self.store.is_loading, self.store.loading_message
        self.store.set_loading("Reading document...")
        self.store.clear_error()
        try:
            self.store.story_text = extract_story_text(data, filename)
            return True
        except StoryframeError as e:
            self._surface(e)
            return False
        finally:
            if was_loading:
                self.store.set_loading(message)
            else:
                self.store.clear_loading()

    # =================================================================
    # Analysis + portrait fan-out
    # =================================================================

    async def analyze(
        self,
        story_text: Optional[str] = None,
        notes: Optional[str] = None,
        desired_scene_count: Optional[int] = None,
        style: Optional[StoryStyle] = None,
    ) -> Tuple[List[Character], List[Scene]]:
        """
        Break the story into characters and scenes and start the portraits.

        Arguments default to the current session inputs. The aspect ratio is
        captured here and copied into every new scene.

        Returns:
            (characters, scenes) of the new batch

        Raises:
            ValidationError: blank story (the store is left as it was)
            AnalysisError: gateway or response failure (the store is left empty)
        """
        store = self.store
        text = story_text if story_text is not None else store.story_text
        count = desired_scene_count if desired_scene_count is not None else store.num_scenes

        # rejected inputs never reach the store
        if not text.strip():
            error = ValidationError("Please enter a story or upload a document.")
            self._surface(error)
            raise error
        if count < 1:
            error = ValidationError("The number of scenes must be at least 1.")
            self._surface(error)
            raise error

        store.story_text = text
        store.num_scenes = count
        if notes is not None:
            store.notes = notes
        if style is not None:
            store.story_style = style

        style = store.story_style
        aspect_ratio = store.aspect_ratio

        store.set_loading("Analyzing the story and extracting characters and scenes...")
        store.clear_error()
        store.clear_batch()

        try:
            analysis = await self.story_agent.analyze(
                store.story_text, store.num_scenes, style, store.notes
            )
        except StoryframeError as e:
            store.clear_loading()
            self._surface(e)
            raise

        characters = [
            Character(name=c.name, description=c.description, image=None, loading=True)
            for c in analysis.characters
        ]
        scenes = [
            Scene(
                scene_number=s.scene_number,
                prompt=s.prompt,
                image=None,
                video_uri=None,
                aspect_ratio=aspect_ratio,
                image_loading=False,
                video_loading=False,
            )
            for s in analysis.scenes
        ]
        batch_id = store.replace_batch(characters, scenes)
        store.set_loading("Creating character images...")

        # the batch is in place before any portrait request is issued
        self._fanout_task = asyncio.create_task(
            self._generate_all_character_images(batch_id, style, aspect_ratio)
        )
        return list(store.characters), list(store.scenes)

    async def _generate_all_character_images(
        self,
        batch_id: int,
        style: StoryStyle,
        aspect_ratio: AspectRatio,
    ) -> None:
        try:
            await self.character_manager.generate_all(self.store, batch_id, style, aspect_ratio)
        finally:
            # join-all: cleared only once every portrait has settled
            if self.store.batch_id == batch_id:
                self.store.clear_loading()

    async def join_character_images(self) -> None:
        """Wait for the current portrait fan-out, if any."""
        if self._fanout_task is not None:
            await self._fanout_task

    async def analyze_and_render(self, *args, **kwargs) -> Tuple[List[Character], List[Scene]]:
        """analyze() and wait for every portrait to settle."""
        await self.analyze(*args, **kwargs)
        await self.join_character_images()
        return list(self.store.characters), list(self.store.scenes)

    # =================================================================
    # Character actions
    # =================================================================

    async def regenerate_character_image(self, index: int) -> bool:
        """
        Re-render one portrait with the current style and global ratio.

        Not single-flight: a second call for the same index while the first
        is pending races with it (last write wins).
        """
        store = self.store
        character = store.character_at(index)
        style, aspect_ratio = store.story_style, store.aspect_ratio
        batch_id = store.batch_id

        store.update_character(index, loading=True)
        store.clear_error()

        try:
            image = await self.image_agent.generate_character_image(character, style, aspect_ratio)
        except StoryframeError as e:
            if store.batch_id == batch_id:
                store.update_character(index, image=None, loading=False)
            self._surface(GenerationError(
                f"Failed to regenerate the image for {character.name}.", scope=character.name
            ))
            logger.debug(f"Cause: {e.message}")
            return False

        if store.batch_id == batch_id:
            store.update_character(index, image=image, loading=False)
        return True

    def upload_character_image(self, index: int, file_bytes: bytes) -> bool:
        """Use an uploaded image as the portrait. Keeps the old one if decoding fails."""
        store = self.store
        character = store.character_at(index)
        store.update_character(index, loading=True)
        try:
            image = image_utils.decode_upload(file_bytes)
        except DecodeError as e:
            store.update_character(index, loading=False)
            self._surface(DecodeError(
                f"Failed to upload the image for {character.name}.", scope=character.name
            ))
            logger.debug(f"Cause: {e.message}")
            return False

        store.update_character(index, image=image, loading=False)
        return True

    def update_character_description(self, index: int, description: str) -> None:
        """Edit the description; the current portrait is kept."""
        self.store.update_character(index, description=description)

    def character_preview(self, index: int) -> Optional[ImageData]:
        """Portrait padded to the global ratio (display only)."""
        character = self.store.character_at(index)
        if character.image is None:
            return None
        return image_utils.preview_character(character.image, self.store.aspect_ratio)

    # =================================================================
    # Scene actions
    # =================================================================

    def update_scene_prompt(self, index: int, prompt: str) -> None:
        self.store.update_scene(index, prompt=prompt)

    def update_scene_aspect_ratio(self, index: int, aspect_ratio: AspectRatio) -> None:
        self.store.update_scene(index, aspect_ratio=aspect_ratio)

    async def generate_scene_image(self, index: int) -> bool:
        """Render one scene still. False when it failed or its batch was replaced."""
        number = self.store.scene_at(index).scene_number
        self.store.clear_error()
        try:
            image = await self.scene_orchestrator.generate_image(self.store, index)
        except StoryframeError as e:
            self._surface(GenerationError(
                f"Failed to generate an image for scene {number}.", scope=f"scene {number}"
            ))
            logger.debug(f"Cause: {e.message}")
            return False
        return image is not None

    async def generate_scene_video(self, index: int) -> bool:
        """
        Animate one scene. A missing still is reported as a PreconditionError
        without contacting the gateway; a rejected key reopens key selection.
        """
        self.store.clear_error()
        try:
            uri = await self.scene_orchestrator.generate_video(self.store, index)
        except CredentialError as e:
            self._surface(e)
            try:
                await self.credentials.select_credential()
            except CredentialError as select_error:
                logger.warning(select_error.message)
            return False
        except StoryframeError as e:
            self._surface(e)
            return False
        return uri is not None

    def delete_scene_image(self, index: int) -> None:
        self.scene_orchestrator.delete_image(self.store, index)

    def scene_preview(self, index: int) -> Optional[ImageData]:
        """Still cropped to the scene's own ratio (display only)."""
        scene = self.store.scene_at(index)
        if scene.image is None:
            return None
        return image_utils.preview_scene(scene.image, scene.aspect_ratio)

    # =================================================================
    # Project file
    # =================================================================

    def export_project(self) -> bytes:
        return project_io.export_project(self.store)

    def import_project(self, data: bytes) -> ProjectSnapshot:
        """Replace the whole session with a project document (all-or-nothing)."""
        try:
            snapshot = project_io.import_project(self.store, data)
        except StoryframeError as e:
            self._surface(e)
            raise
        self.store.clear_loading()
        # exported video URIs carry no key; attach the active one for playback
        api_key = self.credentials.api_key()
        for index, scene in enumerate(self.store.scenes):
            if scene.video_uri:
                self.store.update_scene(index, video_uri=with_api_key(scene.video_uri, api_key))
        return snapshot

    def save_project(self, directory: Optional[str] = None) -> str:
        return str(project_io.save_project(self.store, directory))


def create_pipeline(**kwargs) -> StoryframePipeline:
    """Pipeline wired to Gemini with keys from .env / the environment."""
    load_dotenv()
    return StoryframePipeline(**kwargs)
