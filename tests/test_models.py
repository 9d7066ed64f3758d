"""
Unit tests for the pydantic data models.
"""
import pytest
from pydantic import ValidationError as SchemaValidationError

from conftest import make_image
from schemas import AspectRatio, Character, ImageData, Scene, StoryAnalysis, parse_ratio


class TestAspectRatio:

    def test_parse_ratio(self):
        assert parse_ratio("16:9") == (16, 9)
        assert parse_ratio(" 21 : 9 ") == (21, 9)

    @pytest.mark.parametrize("value", ["", "16x9", "0:1", "4:0", "a:b"])
    def test_invalid_ratio_rejected(self, value):
        with pytest.raises(SchemaValidationError):
            AspectRatio(label="bad", value=value)

    def test_dimensions(self, cinematic):
        assert cinematic.width == 21
        assert cinematic.height == 9
        assert cinematic.ratio == pytest.approx(21 / 9)


class TestImageData:

    def test_serializes_to_data_url(self):
        image = ImageData(data=b"abc", mime_type="image/jpeg")
        assert image.model_dump() == "data:image/jpeg;base64,YWJj"

    def test_parses_data_url(self):
        image = ImageData.model_validate("data:image/png;base64,YWJj")
        assert image.data == b"abc"
        assert image.mime_type == "image/png"

    def test_rejects_non_data_url(self):
        with pytest.raises(SchemaValidationError):
            ImageData.model_validate("https://example.com/a.png")


class TestScene:

    def test_aliases(self, square):
        scene = Scene.model_validate({
            "sceneNumber": 2,
            "prompt": "a harbor at dawn",
            "aspectRatio": square.model_dump(),
            "isLoading": True,
        })
        assert scene.scene_number == 2
        assert scene.image_loading is True
        assert scene.video_loading is False

    def test_video_requires_image(self, square):
        scene = Scene(scene_number=1, prompt="p", aspect_ratio=square, video_uri="https://v")
        assert scene.video_uri is None

        with_image = Scene(scene_number=1, prompt="p", aspect_ratio=square, image=make_image(), video_uri="https://v")
        assert with_image.video_uri == "https://v"

    def test_scene_number_positive(self, square):
        with pytest.raises(SchemaValidationError):
            Scene(scene_number=0, prompt="p", aspect_ratio=square)


class TestCharacter:

    def test_loading_alias_round_trip(self):
        character = Character(name="Lina", description="red scarf", loading=True)
        dumped = character.model_dump(by_alias=True)
        assert dumped["isLoading"] is True
        assert Character.model_validate(dumped).loading is True


class TestStoryAnalysis:

    def test_valid(self):
        analysis = StoryAnalysis.model_validate({
            "characters": [{"name": "Lina", "description": "red scarf"}],
            "scenes": [{"sceneNumber": 1, "prompt": "p"}],
        })
        assert analysis.scenes[0].scene_number == 1

    def test_string_scene_number_rejected(self):
        with pytest.raises(SchemaValidationError):
            StoryAnalysis.model_validate({
                "characters": [],
                "scenes": [{"sceneNumber": "1", "prompt": "p"}],
            })

    def test_missing_scenes_rejected(self):
        with pytest.raises(SchemaValidationError):
            StoryAnalysis.model_validate({"characters": []})
