"""画像変換モジュール

ラスター画像同士の変換と、ラスター画像から1ページのPDFへの変換を提供する。
JPEGやBMPのようにアルファチャンネルを持てない形式へは、白背景で平坦化してから書き出す。
"""

import io
from collections.abc import Iterator
from contextlib import contextmanager

import fitz  # type: ignore[import-untyped]
from PIL import Image, UnidentifiedImageError

from morphit.converter.base import (
    RASTER_QUALITY,
    DecodeFailure,
    EmptyResultError,
    EncodeFailure,
    SourceFile,
    TargetFormat,
    UnsupportedConversionError,
)

# 不透明な白（JPEG等の平坦化用背景）
OPAQUE_WHITE = (255, 255, 255, 255)
TRANSPARENT = (0, 0, 0, 0)

_PIL_FORMATS: dict[TargetFormat, str] = {
    TargetFormat.JPEG: "JPEG",
    TargetFormat.PNG: "PNG",
    TargetFormat.WEBP: "WEBP",
    TargetFormat.GIF: "GIF",
    TargetFormat.BMP: "BMP",
}


def quality_percent() -> int:
    """品質係数(0.0-1.0)をPillowのquality値(0-100)に変換する"""
    return round(RASTER_QUALITY * 100)


@contextmanager
def open_raster(data: bytes) -> Iterator[Image.Image]:
    """バイト列から画像をデコードし、スコープ終了時に必ず解放する

    Args:
        data: 画像のバイト列

    Yields:
        デコード済みのPIL.Imageオブジェクト

    Raises:
        DecodeFailure: 画像として解析できない場合
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeFailure(f"画像をデコードできません: {e}") from e

    try:
        yield image
    finally:
        image.close()


def encode_raster(image: Image.Image, target: TargetFormat) -> bytes:
    """画像を指定されたラスター形式でエンコードする

    非可逆形式（JPEG/WebP）は固定の品質係数で書き出す。

    Args:
        image: エンコードする画像
        target: 出力形式

    Returns:
        エンコード後のバイト列

    Raises:
        UnsupportedConversionError: ラスター形式でない場合
        EncodeFailure: エンコードに失敗した場合
        EmptyResultError: 出力が空の場合
    """
    pil_format = _PIL_FORMATS.get(target)
    if pil_format is None:
        raise UnsupportedConversionError(f"ラスター形式ではありません: {target.value}")

    if not target.supports_alpha and image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    options = {"quality": quality_percent()} if target.is_lossy else {}
    try:
        image.save(buffer, format=pil_format, **options)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeFailure(f"{target.value}形式へのエンコードに失敗しました: {e}") from e

    data = buffer.getvalue()
    if not data:
        raise EmptyResultError(f"{target.value}形式へのエンコード結果が空です")
    return data


def page_orientation(width: int, height: int) -> str:
    """画像サイズからページの向きを決める（正方形はportrait）"""
    return "landscape" if width > height else "portrait"


class ImageCodec:
    """ラスター画像コーデック

    ラスター画像を別のラスター形式、または画像1枚だけを載せたPDFへ変換する。
    """

    def raster_to_raster(self, source: SourceFile, target: TargetFormat) -> bytes:
        """ラスター画像を別のラスター形式に変換する

        元画像と同じサイズのキャンバスを作り、その上に元画像を合成する。
        アルファを保存できない形式ではキャンバスを不透明な白で塗りつぶしてから合成する。

        Args:
            source: 変換元ファイル
            target: 変換先のラスター形式

        Returns:
            変換後のバイト列

        Raises:
            UnsupportedConversionError: 変換先がラスター形式でない場合
            DecodeFailure: 変換元を画像として解析できない場合
            EncodeFailure: エンコードに失敗した場合
        """
        if not target.is_raster:
            raise UnsupportedConversionError(f"ラスター形式ではありません: {target.value}")

        with open_raster(source.data) as image:
            rgba = image.convert("RGBA")
            background = TRANSPARENT if target.supports_alpha else OPAQUE_WHITE
            canvas = Image.new("RGBA", rgba.size, background)
            try:
                canvas.alpha_composite(rgba)
                return encode_raster(canvas, target)
            finally:
                canvas.close()
                rgba.close()

    def raster_to_page(self, source: SourceFile) -> bytes:
        """ラスター画像を1ページのPDFに変換する

        ページサイズは画像のピクセルサイズと同一（1ピクセル=1単位、余白なし）とし、
        画像を原点(0, 0)からページ全体に配置する。

        Args:
            source: 変換元ファイル

        Returns:
            PDFのバイト列

        Raises:
            DecodeFailure: 変換元を画像として解析できない場合
            EncodeFailure: PDFの生成に失敗した場合
        """
        with open_raster(source.data) as image:
            width, height = image.size
            embedded = encode_raster(image.convert("RGBA"), TargetFormat.PNG)

        orientation = page_orientation(width, height)
        try:
            with fitz.open() as doc:
                page = doc.new_page(width=width, height=height)
                page.insert_image(fitz.Rect(0, 0, width, height), stream=embedded)
                doc.set_metadata({"title": source.name, "subject": f"orientation: {orientation}"})
                data = doc.tobytes(garbage=3, deflate=True)
        except (RuntimeError, ValueError) as e:
            raise EncodeFailure(f"PDFの生成に失敗しました: {e}") from e

        if not data:
            raise EmptyResultError("PDFの生成結果が空です")
        return data
