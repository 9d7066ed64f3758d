"""
Video Agent: animates a scene still with Veo.

Image-to-video only: a still is required before a scene can be animated.

Flow for one invocation (a VideoJob):
    idle -> requesting -> polling -> done | failed

The polling loop has no client-side timeout or attempt limit; it runs until
the operation reports done or the gateway raises. ``sleep`` is injectable so
tests can run many poll cycles without waiting.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from agents.credentials import CredentialProvider
from agents.gateway import GenerationGateway, VideoOperation
from config import get_video_config
from schemas import Scene, VideoJobState
from utils.constants import CREDENTIAL_ERROR_MARKERS, VIDEO_LANDSCAPE, VIDEO_PORTRAIT
from utils.error_manager import ErrorManager
from utils.errors import CredentialError, GenerationError, PreconditionError, StoryframeError
from utils.logger import get_logger
from utils.prompt_builder import PromptBuilder

logger = get_logger("video_agent")

Sleep = Callable[[float], Awaitable[None]]


def coerce_video_ratio(ratio_value: str) -> str:
    """Veo supports portrait or landscape only; anything not 9:16 is landscape."""
    return VIDEO_PORTRAIT if ratio_value.replace(" ", "") == VIDEO_PORTRAIT else VIDEO_LANDSCAPE


def is_credential_failure(error: BaseException) -> bool:
    message = str(error)
    return any(marker in message for marker in CREDENTIAL_ERROR_MARKERS)


def with_api_key(uri: str, api_key: Optional[str]) -> str:
    """Append the API key so the video URI can be fetched on its own."""
    if not api_key or "key=" in uri:
        return uri
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}key={api_key}"


def without_api_key(uri: Optional[str]) -> Optional[str]:
    """Drop the ``key`` query parameter so the URI can be shared."""
    if not uri or "key=" not in uri:
        return uri
    parts = urlsplit(uri)
    query = [(name, value) for name, value in parse_qsl(parts.query, keep_blank_values=True) if name != "key"]
    return urlunsplit(parts._replace(query=urlencode(query)))


class VideoJob:
    """State of a single animate invocation for one scene."""

    def __init__(self, scene_number: int):
        self.scene_number = scene_number
        self.state = VideoJobState.IDLE
        self.history: List[VideoJobState] = []
        self.polls = 0
        self.uri: Optional[str] = None
        self.error: Optional[StoryframeError] = None

    def transition(self, state: VideoJobState) -> None:
        logger.debug(f"Scene {self.scene_number} video: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    @property
    def finished(self) -> bool:
        return self.state in (VideoJobState.DONE, VideoJobState.FAILED)


class VideoAgent:
    """
    비디오 생성 에이전트 (Veo I2V)
    """

    def __init__(
        self,
        gateway: GenerationGateway,
        credentials: CredentialProvider,
        poll_interval: Optional[float] = None,
        resolution: Optional[str] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        if poll_interval is None or resolution is None:
            video_config = get_video_config()
            if poll_interval is None:
                poll_interval = video_config["poll_interval_sec"]
            resolution = resolution or video_config["resolution"]
        self.gateway = gateway
        self.credentials = credentials
        self.poll_interval = poll_interval
        self.resolution = resolution
        self.sleep = sleep

    @staticmethod
    def check_ready(scene: Scene) -> None:
        if scene.image is None:
            raise PreconditionError(
                "You must render a still for the scene before animating it.",
                scope=f"scene {scene.scene_number}",
            )

    async def ensure_credential(self) -> None:
        """Run the selection flow when no key is available yet."""
        if not await self.credentials.has_credential():
            logger.info("No API key selected; opening key selection...")
            await self.credentials.select_credential()

    async def animate(self, scene: Scene, job: VideoJob) -> str:
        """
        Request a video for ``scene`` and poll it to completion.

        Args:
            scene: Scene with a still image
            job: Fresh VideoJob that records the state transitions

        Returns:
            Playable video URI with the API key attached

        Raises:
            PreconditionError: the scene has no still
            CredentialError: the service rejected the active key
            GenerationError: any other failure
        """
        self.check_ready(scene)
        scope = f"scene {scene.scene_number}"

        try:
            job.transition(VideoJobState.REQUESTING)
            aspect_ratio = coerce_video_ratio(scene.aspect_ratio.value)
            operation = await self.gateway.start_video(
                prompt=PromptBuilder.build_animation_prompt(scene),
                image=scene.image,
                aspect_ratio=aspect_ratio,
                resolution=self.resolution,
            )

            job.transition(VideoJobState.POLLING)
            operation = await self._wait(operation, job)

            if operation.error:
                raise GenerationError(f"Video generation failed for {scope}: {operation.error}", scope=scope)
            if not operation.uri:
                raise GenerationError(f"Could not get the video link for {scope}.", scope=scope)

            job.uri = with_api_key(operation.uri, self.credentials.api_key())
            job.transition(VideoJobState.DONE)
            logger.info(f"Scene {scene.scene_number} video ready after {job.polls} poll(s)")
            return job.uri

        except Exception as e:
            job.error = self._classify(e, scope)
            job.transition(VideoJobState.FAILED)
            ErrorManager.log_error("VideoAgent", "Veo generation failed", f"{scope}: {type(e).__name__}: {e}")
            if job.error is e:
                raise
            raise job.error from e

    async def _wait(self, operation: VideoOperation, job: VideoJob) -> VideoOperation:
        """Sequential polling loop: sleep, refresh, repeat until done."""
        while not operation.done:
            await self.sleep(self.poll_interval)
            operation = await self.gateway.poll_video(operation)
            job.polls += 1
            if not operation.done:
                logger.debug(f"Scene {job.scene_number}: still generating ({job.polls} poll(s))")
        return operation

    @staticmethod
    def _classify(error: Exception, scope: str) -> StoryframeError:
        if isinstance(error, CredentialError):
            return error
        if is_credential_failure(error):
            return CredentialError(
                "There was a problem with the API key. Please select a valid key.",
                scope=scope,
            )
        if isinstance(error, GenerationError):
            return error
        return GenerationError(f"Failed to animate the characters in {scope}.", scope=scope)
