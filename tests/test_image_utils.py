"""
Unit tests for image post-processing (pad / crop / upload / download).
"""
import io

import pytest
from PIL import Image

from conftest import make_image, make_png
from schemas import ImageData
from utils import image_utils
from utils.constants import PAD_BACKGROUND_RGBA
from utils.errors import DecodeError


def size_of(image: ImageData):
    return Image.open(io.BytesIO(image.data)).size


class TestGeometry:

    def test_pad_canvas_grows_height(self, square):
        assert image_utils.pad_canvas_size((200, 100), square) == (200, 200)

    def test_pad_canvas_grows_width(self, landscape):
        assert image_utils.pad_canvas_size((90, 90), landscape) == (160, 90)

    def test_pad_canvas_never_shrinks(self, square):
        assert image_utils.pad_canvas_size((50, 50), square) == (50, 50)

    def test_crop_box_wide_source(self, square):
        assert image_utils.crop_box((200, 100), square) == (50, 0, 150, 100)

    def test_crop_box_tall_source(self, landscape):
        left, top, right, bottom = image_utils.crop_box((160, 160), landscape)
        assert (right - left, bottom - top) == (160, 90)
        assert top == 35


class TestPad:

    def test_pad_non_square_to_square(self, square):
        padded = image_utils.pad(make_image((200, 100)), square)
        assert size_of(padded) == (200, 200)
        assert padded.mime_type == "image/png"

    def test_pad_keeps_source_centered(self, square):
        padded = image_utils.pad(make_image((200, 100), color=(0, 255, 0)), square)
        img = Image.open(io.BytesIO(padded.data)).convert("RGBA")
        assert img.getpixel((100, 100)) == (0, 255, 0, 255)
        assert img.getpixel((100, 10)) == PAD_BACKGROUND_RGBA

    def test_pad_does_not_touch_source(self, square):
        source = make_image((200, 100))
        original = source.data
        image_utils.pad(source, square)
        assert source.data == original


class TestCrop:

    def test_crop_to_ratio(self, landscape):
        cropped = image_utils.crop(make_image((160, 160)), landscape)
        assert size_of(cropped) == (160, 90)

    def test_crop_noop_when_ratio_matches(self, landscape):
        source = make_image((160, 90))
        assert image_utils.crop(source, landscape) is source

    def test_crop_undecodable_raises(self, square):
        with pytest.raises(DecodeError):
            image_utils.crop(ImageData(data=b"not an image"), square)

    def test_preview_falls_back_to_original(self, square):
        broken = ImageData(data=b"not an image")
        assert image_utils.preview_scene(broken, square) is broken
        assert image_utils.preview_character(broken, square) is broken


class TestUpload:

    def test_png_passes_through(self):
        data = make_png((10, 10))
        image = image_utils.decode_upload(data)
        assert image.data == data
        assert image.mime_type == "image/png"

    def test_other_format_converted_to_png(self):
        buf = io.BytesIO()
        Image.new("RGB", (8, 8), (1, 2, 3)).save(buf, format="BMP")
        image = image_utils.decode_upload(buf.getvalue())
        assert image.mime_type == "image/png"
        assert size_of(image) == (8, 8)

    @pytest.mark.parametrize("data", [b"", b"garbage bytes"])
    def test_unreadable_upload(self, data):
        with pytest.raises(DecodeError):
            image_utils.decode_upload(data)


class TestDownload:

    def test_jpeg_preset(self):
        image = image_utils.convert_for_download(make_image((20, 20)), "jpeg-low")
        assert image.mime_type == "image/jpeg"
        assert Image.open(io.BytesIO(image.data)).format == "JPEG"

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            image_utils.convert_for_download(make_image(), "tiff")

    def test_filename(self):
        assert image_utils.download_filename("scene-3", "jpeg-medium") == "scene-3.jpg"
        assert image_utils.download_filename("a/b", "png") == "a_b.png"
