"""テスト共通フィクスチャ

画像・PDF・DOCX・WAVのテストデータをメモリ上で生成する。
"""

import io
import math
from collections.abc import Callable

import fitz  # type: ignore[import-untyped]
import pytest
from docx import Document
from PIL import Image

from morphit.converter.audio import encode_wav
from morphit.converter.base import DOCX_MIME, PcmAudioBuffer, SourceFile


def _create_png_bytes(
    width: int = 100,
    height: int = 50,
    color: tuple[int, int, int, int] = (0, 0, 0, 0),
    half_red: bool = False,
) -> bytes:
    """RGBA PNGを生成する

    half_redを指定すると左半分だけを不透明な赤で塗る。
    """
    image = Image.new("RGBA", (width, height), color)
    if half_red:
        image.paste((255, 0, 0, 255), (0, 0, width // 2, height))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _create_pdf_bytes(
    colors: list[tuple[float, float, float]],
    width: float = 200,
    height: float = 100,
) -> bytes:
    """ページごとに全面を指定色で塗りつぶしたPDFを生成する"""
    with fitz.open() as doc:
        for color in colors:
            page = doc.new_page(width=width, height=height)
            page.draw_rect(page.rect, color=color, fill=color)
        return doc.tobytes()


def _create_docx_bytes(paragraphs: list[str], heading: str | None = None) -> bytes:
    """見出しと段落を持つDOCXを生成する"""
    document = Document()
    if heading is not None:
        document.add_heading(heading, level=1)
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _create_sine_pcm(
    seconds: float = 2.0,
    sample_rate: int = 44100,
    channels: int = 1,
    frequency: float = 440.0,
) -> PcmAudioBuffer:
    """振幅0.5の正弦波PCMを生成する"""
    frames = int(seconds * sample_rate)
    wave = [0.5 * math.sin(2 * math.pi * frequency * i / sample_rate) for i in range(frames)]
    return PcmAudioBuffer.from_samples([wave] * channels, sample_rate)


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    """PNG生成関数"""
    return _create_png_bytes


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """PDF生成関数"""
    return _create_pdf_bytes


@pytest.fixture
def make_docx() -> Callable[..., bytes]:
    """DOCX生成関数"""
    return _create_docx_bytes


@pytest.fixture
def make_sine_pcm() -> Callable[..., PcmAudioBuffer]:
    """正弦波PCM生成関数"""
    return _create_sine_pcm


@pytest.fixture
def png_source() -> SourceFile:
    """100x50の完全に透明なRGBA PNG"""
    return SourceFile(data=_create_png_bytes(), mime_type="image/png", name="sample.png")


@pytest.fixture
def two_page_pdf_source() -> SourceFile:
    """1ページ目が赤、2ページ目が青の200x100ポイントのPDF"""
    data = _create_pdf_bytes([(1.0, 0.0, 0.0), (0.0, 0.0, 1.0)])
    return SourceFile(data=data, mime_type="application/pdf", name="two_pages.pdf")


@pytest.fixture
def docx_source() -> SourceFile:
    """見出し1つと段落1つのDOCX"""
    data = _create_docx_bytes(["Hello world"], heading="Title")
    return SourceFile(data=data, mime_type=DOCX_MIME, name="letter.docx")


@pytest.fixture
def mono_wav_source() -> SourceFile:
    """2秒のモノラルWAV"""
    data = encode_wav(_create_sine_pcm(seconds=2.0, channels=1))
    return SourceFile(data=data, mime_type="audio/wav", name="tone.wav")
