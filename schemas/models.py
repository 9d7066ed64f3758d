"""
STORYFRAME Data Models

공통 데이터 모델 정의 (Pydantic 기반)
- ImageData: inline image bytes, serialized as a data URL
- AspectRatio / StoryStyle: user-selectable value objects
- Character / Scene: per-item records with their lifecycle flags
- StoryAnalysis: validated gateway breakdown of a story
- ProjectSnapshot: exportable session state

JSON aliases are the camelCase keys used by exported project files.
"""

import base64
import binascii
import re
from enum import Enum
from typing import Optional, List, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_serializer,
    model_validator,
)


_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)
_RATIO_RE = re.compile(r"^\s*(\d+)\s*:\s*(\d+)\s*$")


def parse_ratio(value: str) -> tuple:
    """Parse a "W:H" string into positive integers."""
    match = _RATIO_RE.match(value or "")
    if not match:
        raise ValueError(f"Aspect ratio must look like 'W:H', got {value!r}")
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise ValueError(f"Aspect ratio terms must be positive, got {value!r}")
    return width, height


class VideoJobState(str, Enum):
    """씬 비디오 생성 상태"""
    IDLE = "idle"
    REQUESTING = "requesting"
    POLLING = "polling"
    DONE = "done"
    FAILED = "failed"


class ImageData(BaseModel):
    """Raw image bytes plus mime type. Serializes to a ``data:`` URL."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/png"

    @model_validator(mode="before")
    @classmethod
    def _from_data_url(cls, value: Any) -> Any:
        if isinstance(value, str):
            match = _DATA_URL_RE.match(value)
            if not match:
                raise ValueError("Image must be a base64 data URL")
            try:
                raw = base64.b64decode(match.group("data"), validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError(f"Invalid base64 image payload: {e}") from e
            return {"data": raw, "mime_type": match.group("mime")}
        return value

    @model_serializer(mode="plain")
    def _to_data_url(self) -> str:
        return self.to_data_url()

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class AspectRatio(BaseModel):
    """Immutable "W:H" ratio with a display label."""
    model_config = ConfigDict(frozen=True)

    label: str
    value: str

    @field_validator("value")
    @classmethod
    def _check_value(cls, v: str) -> str:
        parse_ratio(v)
        return v.strip()

    @property
    def width(self) -> int:
        return parse_ratio(self.value)[0]

    @property
    def height(self) -> int:
        return parse_ratio(self.value)[1]

    @property
    def ratio(self) -> float:
        w, h = parse_ratio(self.value)
        return w / h


class StoryStyle(BaseModel):
    """비주얼 스타일 프리셋"""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str


class StoryGenre(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str


class WritingStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str


class Character(BaseModel):
    """A cast member. Identity is its position in the character list."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    image: Optional[ImageData] = None
    loading: bool = Field(default=False, alias="isLoading")


class Scene(BaseModel):
    """A story beat with its own still, optional video and aspect ratio."""
    model_config = ConfigDict(populate_by_name=True)

    scene_number: int = Field(..., gt=0, alias="sceneNumber")
    prompt: str
    image: Optional[ImageData] = None
    video_uri: Optional[str] = Field(default=None, alias="videoUri")
    aspect_ratio: AspectRatio = Field(..., alias="aspectRatio")
    image_loading: bool = Field(default=False, alias="isLoading")
    video_loading: bool = Field(default=False, alias="isVideoLoading")

    @model_validator(mode="after")
    def _video_requires_image(self) -> "Scene":
        # a video is always derived from a still
        if self.image is None and self.video_uri is not None:
            self.video_uri = None
        return self


# ─── Gateway analysis response ────────────────────────────

class AnalyzedCharacter(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    name: str
    description: str


class AnalyzedScene(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", populate_by_name=True)

    scene_number: int = Field(..., gt=0, alias="sceneNumber")
    prompt: str


class StoryAnalysis(BaseModel):
    """Structured breakdown returned by the analysis call."""
    model_config = ConfigDict(strict=True, extra="ignore")

    characters: List[AnalyzedCharacter]
    scenes: List[AnalyzedScene]


# ─── Project file ─────────────────────────────────────────

class ProjectSnapshot(BaseModel):
    """Serializable session state (see utils.project_io)."""
    model_config = ConfigDict(populate_by_name=True)

    story_text: str = Field(..., alias="storyText")
    notes: str = ""
    num_scenes: int = Field(..., gt=0, alias="numScenes")
    story_style: StoryStyle = Field(..., alias="storyStyle")
    aspect_ratio: AspectRatio = Field(..., alias="aspectRatio")
    characters: List[Character] = Field(default_factory=list)
    scenes: List[Scene] = Field(default_factory=list)
