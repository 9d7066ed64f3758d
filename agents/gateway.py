"""
Remote Generation Gateway: Gemini (text/image) and Veo (video).

GenerationGateway is the boundary the agents talk to. GeminiGateway
implements it with the official google-genai SDK (async client). Tests
substitute an in-memory gateway.

Calls:
- analyze_story: structured JSON breakdown of a story
- generate_text: free text (idea-to-story)
- generate_image: ordered image/text parts -> zero or one inline image
- start_video / poll_video: Veo long-running operation
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from google import genai
from google.genai import types

from agents.credentials import CredentialProvider
from config import get_model_config
from schemas import ImageData
from utils.errors import CredentialError
from utils.logger import get_logger

logger = get_logger("gateway")

Part = Union[ImageData, str]


@dataclass
class VideoOperation:
    """Snapshot of a Veo long-running operation."""
    handle: Any
    done: bool = False
    uri: Optional[str] = None
    error: Optional[str] = None


class GenerationGateway(ABC):
    """Opaque request/response contract of the remote generation service."""

    @abstractmethod
    async def analyze_story(self, prompt: str, schema: Dict) -> str:
        """Return the raw JSON text of a structured story breakdown."""

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        ...

    @abstractmethod
    async def generate_image(self, parts: Sequence[Part]) -> Optional[ImageData]:
        """Return the first inline image of the response, or None."""

    @abstractmethod
    async def start_video(
        self,
        prompt: str,
        image: ImageData,
        aspect_ratio: str,
        resolution: str,
    ) -> VideoOperation:
        ...

    @abstractmethod
    async def poll_video(self, operation: VideoOperation) -> VideoOperation:
        ...


def to_genai_schema(schema: Dict) -> types.Schema:
    """Convert a small JSON-schema dict into the SDK's Schema type."""
    kwargs: Dict[str, Any] = {"type": types.Type(schema["type"].upper())}
    if "properties" in schema:
        kwargs["properties"] = {k: to_genai_schema(v) for k, v in schema["properties"].items()}
    if "items" in schema:
        kwargs["items"] = to_genai_schema(schema["items"])
    if "required" in schema:
        kwargs["required"] = list(schema["required"])
    return types.Schema(**kwargs)


def to_genai_parts(parts: Sequence[Part]) -> List[types.Part]:
    converted = []
    for part in parts:
        if isinstance(part, ImageData):
            converted.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
        else:
            converted.append(types.Part.from_text(text=part))
    return converted


def extract_inline_image(response: Any) -> Optional[ImageData]:
    """First inline image part of a generate_content response."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in (getattr(content, "parts", None) or []):
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return ImageData(data=inline.data, mime_type=inline.mime_type or "image/png")
    return None


def extract_video_uri(operation: Any) -> Optional[str]:
    """URI of the first generated video of a finished Veo operation."""
    response = getattr(operation, "response", None) or getattr(operation, "result", None)
    videos = getattr(response, "generated_videos", None) or []
    if not videos:
        return None
    video = getattr(videos[0], "video", None)
    return getattr(video, "uri", None)


class GeminiGateway(GenerationGateway):
    """
    google-genai implementation.

    A client is created per call from the provider's current key, so a key
    chosen through the selection flow is picked up immediately.
    """

    def __init__(self, credentials: CredentialProvider, models: Optional[Dict[str, str]] = None):
        self.credentials = credentials
        self.models = models or get_model_config()

    def _client(self) -> genai.Client:
        api_key = self.credentials.api_key()
        if not api_key:
            raise CredentialError("No API key configured for the generation service.")
        return genai.Client(api_key=api_key)

    async def analyze_story(self, prompt: str, schema: Dict) -> str:
        logger.info(f"Analyzing story with {self.models['analysis']}...")
        response = await self._client().aio.models.generate_content(
            model=self.models["analysis"],
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=to_genai_schema(schema),
            ),
        )
        return response.text or ""

    async def generate_text(self, prompt: str) -> str:
        response = await self._client().aio.models.generate_content(
            model=self.models["story"],
            contents=prompt,
        )
        return response.text or ""

    async def generate_image(self, parts: Sequence[Part]) -> Optional[ImageData]:
        response = await self._client().aio.models.generate_content(
            model=self.models["image"],
            contents=types.Content(role="user", parts=to_genai_parts(parts)),
        )
        return extract_inline_image(response)

    async def start_video(
        self,
        prompt: str,
        image: ImageData,
        aspect_ratio: str,
        resolution: str,
    ) -> VideoOperation:
        logger.info(f"Starting {self.models['video']} ({aspect_ratio}, {resolution})...")
        operation = await self._client().aio.models.generate_videos(
            model=self.models["video"],
            prompt=prompt,
            image=types.Image(image_bytes=image.data, mime_type=image.mime_type),
            config=types.GenerateVideosConfig(
                number_of_videos=1,
                resolution=resolution,
                aspect_ratio=aspect_ratio,
            ),
        )
        logger.info(f"Operation started: {operation.name}")
        return self._wrap(operation)

    async def poll_video(self, operation: VideoOperation) -> VideoOperation:
        refreshed = await self._client().aio.operations.get(operation.handle)
        return self._wrap(refreshed)

    @staticmethod
    def _wrap(operation: Any) -> VideoOperation:
        done = bool(getattr(operation, "done", False))
        return VideoOperation(
            handle=operation,
            done=done,
            uri=extract_video_uri(operation) if done else None,
            error=str(operation.error) if done and getattr(operation, "error", None) else None,
        )
