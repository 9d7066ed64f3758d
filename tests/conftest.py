"""
Shared fixtures: an in-memory generation gateway, a credential provider
and small generated images.
"""
import asyncio
import io
import json
import os
import sys
from typing import List, Optional

import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from agents.credentials import CredentialProvider
from agents.gateway import GenerationGateway, VideoOperation
from config import get_default_settings
from pipeline import StoryframePipeline
from schemas import AspectRatio, ImageData, StoryStyle
from store import ProjectStore
from utils.error_manager import ErrorManager


VIDEO_URI = "https://generativelanguage.example/files/video-1:download?alt=media"


def make_png(size=(64, 64), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_image(size=(64, 64), color=(200, 30, 30)) -> ImageData:
    return ImageData(data=make_png(size, color), mime_type="image/png")


def analysis_json(characters=None, scenes=None) -> str:
    if characters is None:
        characters = [{"name": "Lina", "description": "a girl with a red scarf"}]
    if scenes is None:
        scenes = [
            {"sceneNumber": n, "prompt": f"Lina scene {n} in Pixar style"}
            for n in (1, 2, 3)
        ]
    return json.dumps({"characters": characters, "scenes": scenes})


class ImageStep:
    """Scripted outcome of one generate_image call."""

    def __init__(self, result=None, error: Optional[Exception] = None, gate: Optional[asyncio.Event] = None):
        self.result = result
        self.error = error
        self.gate = gate


class FakeGateway(GenerationGateway):
    """
    In-memory gateway.

    - analyze_story returns ``analysis`` (or raises ``analysis_error``)
    - generate_image consumes ``image_script`` in call order, then falls
      back to ``image_rules`` (substring of the text part -> ImageStep),
      then to ``default_image``
    - start_video / poll_video finish after ``polls_until_done`` polls
    """

    def __init__(self):
        self.analysis = analysis_json()
        self.analysis_error: Optional[Exception] = None
        self.story = "Once upon a time there was a lighthouse."
        self.text_error: Optional[Exception] = None

        self.default_image = make_image()
        self.image_script: List[ImageStep] = []
        self.image_rules = {}

        self.polls_until_done = 2
        self.video_uri: Optional[str] = VIDEO_URI
        self.video_error: Optional[Exception] = None
        self.operation_error: Optional[str] = None

        self.analysis_calls = []
        self.text_calls = []
        self.image_calls = []
        self.video_calls = []
        self.poll_calls = 0

    async def analyze_story(self, prompt, schema):
        self.analysis_calls.append(prompt)
        if self.analysis_error:
            raise self.analysis_error
        return self.analysis

    async def generate_text(self, prompt):
        self.text_calls.append(prompt)
        if self.text_error:
            raise self.text_error
        return self.story

    async def generate_image(self, parts):
        self.image_calls.append(list(parts))
        text = parts[-1]
        if self.image_script:
            step = self.image_script.pop(0)
        else:
            step = next(
                (s for key, s in self.image_rules.items() if key in text),
                ImageStep(result=self.default_image),
            )
        if step.gate is not None:
            await step.gate.wait()
        if step.error is not None:
            raise step.error
        return step.result

    async def start_video(self, prompt, image, aspect_ratio, resolution):
        self.video_calls.append({
            "prompt": prompt,
            "image": image,
            "aspect_ratio": aspect_ratio,
            "resolution": resolution,
        })
        if self.video_error:
            raise self.video_error
        return VideoOperation(handle={"polls": 0})

    async def poll_video(self, operation):
        self.poll_calls += 1
        polls = operation.handle["polls"] + 1
        if polls < self.polls_until_done:
            return VideoOperation(handle={"polls": polls})
        return VideoOperation(
            handle={"polls": polls},
            done=True,
            uri=None if self.operation_error else self.video_uri,
            error=self.operation_error,
        )


class FakeCredentials(CredentialProvider):
    def __init__(self, has_key: bool = True):
        self.key = "test-key" if has_key else None
        self.select_calls = 0

    async def has_credential(self):
        return self.key is not None

    async def select_credential(self):
        self.select_calls += 1
        self.key = "selected-key"

    def api_key(self):
        return self.key


@pytest.fixture(autouse=True)
def error_log(tmp_path, monkeypatch):
    """Keep ErrorManager writes inside the test's temp dir."""
    path = tmp_path / "api_errors.log"
    monkeypatch.setattr(ErrorManager, "LOG_FILE", str(path))
    return path


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def credentials():
    return FakeCredentials()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def settings():
    return get_default_settings()


@pytest.fixture
def pipeline(gateway, credentials, settings, sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return StoryframePipeline(
        gateway=gateway,
        credentials=credentials,
        store=ProjectStore(),
        settings=settings,
        sleep=fake_sleep,
    )


@pytest.fixture
def pixar():
    return StoryStyle(id="pixar", label="Pixar")


@pytest.fixture
def square():
    return AspectRatio(label="Square (1:1)", value="1:1")


@pytest.fixture
def portrait():
    return AspectRatio(label="Portrait (9:16)", value="9:16")


@pytest.fixture
def landscape():
    return AspectRatio(label="Landscape (16:9)", value="16:9")


@pytest.fixture
def cinematic():
    return AspectRatio(label="Cinematic (21:9)", value="21:9")
