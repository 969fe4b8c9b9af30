"""ImageCodecのテスト"""

import io
from collections.abc import Callable

import fitz  # type: ignore[import-untyped]
import pytest
from PIL import Image

from morphit.converter.base import (
    DecodeFailure,
    SourceFile,
    TargetFormat,
    UnsupportedConversionError,
)
from morphit.converter.image import (
    ImageCodec,
    encode_raster,
    open_raster,
    page_orientation,
    quality_percent,
)


@pytest.fixture
def codec() -> ImageCodec:
    return ImageCodec()


def _png_source(data: bytes, name: str = "image.png") -> SourceFile:
    return SourceFile(data=data, mime_type="image/png", name=name)


class TestHelpers:
    """補助関数のテスト"""

    def test_quality_percent(self) -> None:
        """品質係数0.92はPillowのquality=92"""
        assert quality_percent() == 92

    @pytest.mark.parametrize(
        "width,height,expected",
        [
            pytest.param(300, 200, "landscape", id="横長"),
            pytest.param(200, 300, "portrait", id="縦長"),
            pytest.param(200, 200, "portrait", id="正方形"),
        ],
    )
    def test_page_orientation(self, width: int, height: int, expected: str) -> None:
        """画像サイズからページの向きを決める"""
        assert page_orientation(width, height) == expected

    def test_open_raster_invalid_bytes(self) -> None:
        """画像でないバイト列はDecodeFailure"""
        with pytest.raises(DecodeFailure), open_raster(b"not an image"):
            pass

    def test_encode_raster_rejects_non_raster(self) -> None:
        """ラスター形式以外へのエンコードは未対応"""
        with pytest.raises(UnsupportedConversionError):
            encode_raster(Image.new("RGB", (1, 1)), TargetFormat.PDF)


class TestRasterToRaster:
    """raster_to_rasterのテスト"""

    def test_transparent_png_to_jpeg_is_white(
        self, codec: ImageCodec, png_source: SourceFile
    ) -> None:
        """完全に透明な画像をJPEGにすると白になる"""
        data = codec.raster_to_raster(png_source, TargetFormat.JPEG)

        with Image.open(io.BytesIO(data)) as image:
            assert image.format == "JPEG"
            assert image.size == (100, 50)
            assert image.mode == "RGB"
            r, g, b = image.getpixel((50, 25))
            assert min(r, g, b) >= 250

    @pytest.mark.parametrize(
        "target,pil_format",
        [
            pytest.param(TargetFormat.JPEG, "JPEG", id="jpeg"),
            pytest.param(TargetFormat.BMP, "BMP", id="bmp"),
        ],
    )
    def test_transparent_pixels_become_white_without_alpha(
        self,
        codec: ImageCodec,
        make_png: Callable[..., bytes],
        target: TargetFormat,
        pil_format: str,
    ) -> None:
        """アルファを持てない形式では透明部分が黒ではなく白になる"""
        source = _png_source(make_png(width=4, height=4))
        data = codec.raster_to_raster(source, target)

        with Image.open(io.BytesIO(data)) as image:
            assert image.format == pil_format
            assert image.mode == "RGB"
            r, g, b = image.getpixel((0, 0))
            assert min(r, g, b) >= 250

    def test_bmp_is_exactly_white(self, codec: ImageCodec, png_source: SourceFile) -> None:
        """BMPは可逆なので透明部分は厳密に(255, 255, 255)になる"""
        data = codec.raster_to_raster(png_source, TargetFormat.BMP)

        with Image.open(io.BytesIO(data)) as image:
            assert image.getpixel((50, 25)) == (255, 255, 255)

    def test_partially_transparent_png_to_jpeg(
        self, codec: ImageCodec, make_png: Callable[..., bytes]
    ) -> None:
        """不透明部分は色を保ち、透明部分だけが白になる"""
        source = _png_source(make_png(width=100, height=50, half_red=True))
        data = codec.raster_to_raster(source, TargetFormat.JPEG)

        with Image.open(io.BytesIO(data)) as image:
            r, g, b = image.getpixel((10, 25))
            assert r >= 240 and g <= 20 and b <= 20
            r, g, b = image.getpixel((90, 25))
            assert min(r, g, b) >= 250

    def test_png_to_png_keeps_alpha(self, codec: ImageCodec, png_source: SourceFile) -> None:
        """アルファを保存できる形式では透明度を維持する"""
        data = codec.raster_to_raster(png_source, TargetFormat.PNG)

        with Image.open(io.BytesIO(data)) as image:
            assert image.mode == "RGBA"
            assert image.getpixel((50, 25))[3] == 0

    @pytest.mark.parametrize(
        "target,pil_format",
        [
            pytest.param(TargetFormat.JPEG, "JPEG", id="jpeg"),
            pytest.param(TargetFormat.PNG, "PNG", id="png"),
            pytest.param(TargetFormat.WEBP, "WEBP", id="webp"),
            pytest.param(TargetFormat.GIF, "GIF", id="gif"),
            pytest.param(TargetFormat.BMP, "BMP", id="bmp"),
        ],
    )
    def test_output_format_and_size(
        self,
        codec: ImageCodec,
        make_png: Callable[..., bytes],
        target: TargetFormat,
        pil_format: str,
    ) -> None:
        """出力形式が正しく、ピクセルサイズが変わらない"""
        source = _png_source(make_png(width=64, height=48, color=(10, 200, 30, 255)))
        data = codec.raster_to_raster(source, target)

        with Image.open(io.BytesIO(data)) as image:
            assert image.format == pil_format
            assert image.size == (64, 48)

    def test_invalid_source(self, codec: ImageCodec) -> None:
        """画像でないバイト列はDecodeFailure"""
        with pytest.raises(DecodeFailure):
            codec.raster_to_raster(_png_source(b"\x89PNG broken"), TargetFormat.JPEG)

    def test_non_raster_target(self, codec: ImageCodec, png_source: SourceFile) -> None:
        """ラスター形式以外は未対応"""
        with pytest.raises(UnsupportedConversionError):
            codec.raster_to_raster(png_source, TargetFormat.MP3)


class TestRasterToPage:
    """raster_to_pageのテスト"""

    @pytest.mark.parametrize(
        "width,height,orientation",
        [
            pytest.param(300, 200, "landscape", id="横長"),
            pytest.param(120, 240, "portrait", id="縦長"),
        ],
    )
    def test_page_matches_image_size(
        self,
        codec: ImageCodec,
        make_png: Callable[..., bytes],
        width: int,
        height: int,
        orientation: str,
    ) -> None:
        """ページサイズは画像のピクセルサイズと一致する"""
        source = _png_source(make_png(width=width, height=height, color=(0, 0, 255, 255)))
        data = codec.raster_to_page(source)

        assert data.startswith(b"%PDF")
        with fitz.open(stream=data, filetype="pdf") as doc:
            assert doc.page_count == 1
            page = doc.load_page(0)
            assert page.rect.width == pytest.approx(width)
            assert page.rect.height == pytest.approx(height)
            assert len(page.get_images()) == 1
            assert doc.metadata["subject"] == f"orientation: {orientation}"

    def test_invalid_source(self, codec: ImageCodec) -> None:
        """画像でないバイト列はDecodeFailure"""
        with pytest.raises(DecodeFailure):
            codec.raster_to_page(_png_source(b"garbage"))
