import base64
from unittest.mock import Mock, patch

import lxml.html
import pytest
import requests
from PIL import features

from quill_toolkit.core.converter import ImageResolver, compute_display_size, detect_image_format
from quill_toolkit.core.converter.image_resolver import detect_image_alignment


def data_uri(data, mime="image/png"):
    return f"data:{mime};base64," + base64.b64encode(data).decode("ascii")


def img(markup):
    root = lxml.html.fragment_fromstring(markup)
    return root if root.tag == "img" else root.find(".//img")


class TestDisplaySize:
    """Bounded dimensions with the aspect ratio preserved."""

    def test_single_explicit_width(self):
        assert compute_display_size(300, None, (1200, 800)) == (300, 200)

    def test_natural_size_scaled_down(self):
        assert compute_display_size(None, None, (1200, 800)) == (480, 320)

    def test_small_images_not_scaled_up(self):
        assert compute_display_size(None, None, (100, 50)) == (100, 50)

    def test_single_explicit_height(self):
        assert compute_display_size(None, 300, (400, 200)) == (480, 240)

    def test_custom_bound(self):
        assert compute_display_size(None, None, (1000, 1000), max_width=200, max_height=100) == (100, 100)


class TestFormatDetection:
    """Byte signature first, then MIME type, then URL extension."""

    def test_signature_beats_mime(self, png_bytes):
        assert detect_image_format(png_bytes, "image/jpeg") == "png"

    def test_mime_when_signature_unknown(self):
        assert detect_image_format(b"????", "image/bmp") == "bmp"

    def test_extension_when_nothing_else(self):
        assert detect_image_format(b"????", "", "http://example.com/a.gif?v=1") == "gif"

    def test_default(self):
        assert detect_image_format(b"????") == "jpg"

    def test_jpeg_signature(self, make_image):
        assert detect_image_format(make_image(fmt="JPEG")) == "jpg"


class TestAlignment:
    def test_auto_margin_centers(self):
        assert detect_image_alignment(img('<img src="x" style="margin: 0 auto">')) == "center"

    def test_float(self):
        assert detect_image_alignment(img('<img src="x" style="float: right">')) == "right"

    def test_parent_text_align(self):
        assert detect_image_alignment(img('<p style="text-align: center"><img src="x"></p>')) == "center"

    def test_default_left(self):
        assert detect_image_alignment(img('<p><img src="x"></p>')) == "left"


class TestResolve:
    """Loading images from data URIs and URLs."""

    def test_data_uri(self, png_bytes):
        block = ImageResolver().resolve(img(f'<img src="{data_uri(png_bytes)}">'))
        assert block.format == "png"
        assert block.data == png_bytes
        assert (block.width, block.height) == (40, 20)

    def test_mislabelled_data_uri_uses_real_format(self, png_bytes):
        block = ImageResolver().resolve(img(f'<img src="{data_uri(png_bytes, "image/jpeg")}">'))
        assert block.format == "png"

    def test_explicit_width_attribute(self, png_bytes):
        block = ImageResolver().resolve(img(f'<img src="{data_uri(png_bytes)}" width="120">'))
        assert (block.width, block.height) == (120, 60)

    def test_style_dimensions_bounded(self, make_image):
        data = make_image(100, 100)
        block = ImageResolver(max_width=50, max_height=50).resolve(
            img(f'<img src="{data_uri(data)}" style="width: 200px; height: 100px">')
        )
        assert (block.width, block.height) == (50, 25)

    @pytest.mark.parametrize("width", ["inf", "1e999", "nan", "-5"])
    def test_unusable_width_attribute_ignored(self, png_bytes, width):
        block = ImageResolver().resolve(img(f'<img src="{data_uri(png_bytes)}" width="{width}">'))
        assert (block.width, block.height) == (40, 20)

    def test_overflowing_style_width_ignored(self, png_bytes):
        huge = "9" * 400
        block = ImageResolver().resolve(img(f'<img src="{data_uri(png_bytes)}" style="width: {huge}px">'))
        assert (block.width, block.height) == (40, 20)

    def test_sizing_error_drops_only_the_image(self, png_bytes):
        with patch("quill_toolkit.core.converter.image_resolver.compute_display_size",
                   side_effect=ValueError("bad size")):
            assert ImageResolver().resolve(img(f'<img src="{data_uri(png_bytes)}">')) is None

    def test_tiff_reencoded_as_png(self, make_image):
        block = ImageResolver().resolve(img(f'<img src="{data_uri(make_image(fmt="TIFF"), "image/tiff")}">'))
        assert block.format == "png"
        assert block.data[:4] == b"\x89PNG"

    @pytest.mark.skipif(not features.check("webp"), reason="Pillow built without WebP")
    def test_webp_converted(self, make_image):
        block = ImageResolver().resolve(img(f'<img src="{data_uri(make_image(fmt="WEBP"), "image/webp")}">'))
        assert block.format == "png"

    def test_invalid_payload(self):
        assert ImageResolver().resolve(img('<img src="data:image/png;base64,@@@">')) is None

    def test_undecodable_bytes(self):
        payload = base64.b64encode(b"not an image").decode("ascii")
        assert ImageResolver().resolve(img(f'<img src="data:image/png;base64,{payload}">')) is None

    def test_missing_and_unsupported_sources(self):
        assert ImageResolver().resolve(img('<img alt="nothing">')) is None
        assert ImageResolver().resolve(img('<img src="file:///tmp/a.png">')) is None

    def test_remote_image(self, png_bytes):
        response = Mock(content=png_bytes, headers={"content-type": "image/png"})
        with patch("quill_toolkit.core.parser.docx_utils.requests.get", return_value=response) as get:
            block = ImageResolver(timeout=3).resolve(img('<img src="https://example.com/a.png">'))
        assert block.format == "png"
        assert get.call_args.kwargs["timeout"] == 3

    def test_remote_failure_drops_image(self):
        with patch("quill_toolkit.core.parser.docx_utils.requests.get",
                   side_effect=requests.ConnectionError("offline")):
            assert ImageResolver().resolve(img('<img src="https://example.com/a.png">')) is None
