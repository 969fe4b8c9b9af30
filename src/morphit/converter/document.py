"""ページ文書変換モジュール

PDFの1ページ目のラスタライズと、DOCX文書からPDFの生成を提供する。

PDFのラスタライズは常に1ページ目だけを対象とする。複数ページの描画は行わない。
"""

import io

import fitz  # type: ignore[import-untyped]
import mammoth  # type: ignore[import-untyped]

from morphit.converter.base import (
    PAGE_MARGIN,
    PDF_RENDER_SCALE,
    RICH_TEXT_LAYOUT_WIDTH,
    RICH_TEXT_PAGE_SCALE,
    DecodeFailure,
    EmptyResultError,
    RenderFailure,
    SourceFile,
    TargetFormat,
    UnsupportedConversionError,
)
from morphit.converter.image import encode_raster, open_raster

# 暴走防止用の上限
MAX_SYNTHESIZED_PAGES = 1000

LAYOUT_CSS = """
body { font-family: sans-serif; font-size: 16px; line-height: 1.4; }
img { max-width: 100%; }
table { border-collapse: collapse; }
td, th { border: 1px solid #999; padding: 4px; }
"""


def docx_to_html(data: bytes) -> str:
    """DOCX文書を簡略化したHTMLに変換する

    Args:
        data: DOCXのバイト列

    Returns:
        本文のHTML断片

    Raises:
        DecodeFailure: DOCXとして解析できない場合
    """
    try:
        result = mammoth.convert_to_html(io.BytesIO(data))
    except Exception as e:
        raise DecodeFailure(f"DOCX文書を解析できません: {e}") from e
    return result.value


class PageDocumentCodec:
    """ページ文書コーデック

    PDF -> ラスター画像（1ページ目のみ）と、DOCX -> PDF の変換を行う。
    """

    def rasterize_first_page(self, source: SourceFile, target: TargetFormat) -> bytes:
        """PDFの1ページ目をラスター画像に変換する

        ページ本来のポイントサイズに1.5倍の倍率をかけたビューポートで描画する。
        2ページ目以降は何ページあっても描画しない。

        Args:
            source: PDFの変換元ファイル
            target: 変換先のラスター形式

        Returns:
            エンコード済み画像のバイト列

        Raises:
            UnsupportedConversionError: 変換先がラスター形式でない場合
            RenderFailure: PDFの解析または描画に失敗した場合
            EncodeFailure: 画像のエンコードに失敗した場合
        """
        if not target.is_raster:
            raise UnsupportedConversionError(f"ラスター形式ではありません: {target.value}")

        try:
            with fitz.open(stream=source.data, filetype="pdf") as doc:
                if doc.page_count == 0:
                    raise RenderFailure("PDFにページがありません")
                page = doc.load_page(0)
                matrix = fitz.Matrix(PDF_RENDER_SCALE, PDF_RENDER_SCALE)
                pixmap = page.get_pixmap(matrix=matrix, alpha=False)
                rendered = pixmap.tobytes("png")
        except (RuntimeError, ValueError) as e:
            raise RenderFailure(f"PDFの描画に失敗しました: {e}") from e

        with open_raster(rendered) as image:
            return encode_raster(image, target)

    def synthesize_page_from_rich_text(self, source: SourceFile) -> bytes:
        """DOCX文書からPDFを生成する

        文書構造を簡略化したHTMLに変換し、幅800単位の画面外レイアウトに流し込む。
        レイアウト結果を0.7倍に縮小し、余白10単位のA4ページへ順に割り付ける。

        Args:
            source: DOCXの変換元ファイル

        Returns:
            PDFのバイト列

        Raises:
            DecodeFailure: DOCXとして解析できない場合
            RenderFailure: レイアウトまたはページ割り付けに失敗した場合
        """
        html = docx_to_html(source.data)

        buffer = io.BytesIO()
        try:
            story = fitz.Story(html=f"<html><body>{html}</body></html>", user_css=LAYOUT_CSS)
            writer = fitz.DocumentWriter(buffer)
        except (RuntimeError, ValueError) as e:
            raise RenderFailure(f"レイアウトの準備に失敗しました: {e}") from e

        try:
            self._paginate(story, writer)
        except (RuntimeError, ValueError) as e:
            raise RenderFailure(f"ページ割り付けに失敗しました: {e}") from e
        finally:
            writer.close()

        data = buffer.getvalue()
        if not data:
            raise EmptyResultError("PDFの生成結果が空です")
        return data

    def _paginate(self, story: fitz.Story, writer: fitz.DocumentWriter) -> None:
        """レイアウト済みの内容をA4ページへ割り付ける"""
        page_rect = fitz.paper_rect("a4")
        layout_height = (page_rect.height - 2 * PAGE_MARGIN) / RICH_TEXT_PAGE_SCALE
        layout_rect = fitz.Rect(0, 0, RICH_TEXT_LAYOUT_WIDTH, layout_height)
        # レイアウト座標 -> ページ座標（縮小してから余白分ずらす）
        matrix = fitz.Matrix(
            RICH_TEXT_PAGE_SCALE, 0, 0, RICH_TEXT_PAGE_SCALE, PAGE_MARGIN, PAGE_MARGIN
        )

        more = 1
        pages = 0
        while more:
            if pages >= MAX_SYNTHESIZED_PAGES:
                raise RenderFailure(f"ページ数が上限({MAX_SYNTHESIZED_PAGES})を超えました")
            device = writer.begin_page(page_rect)
            more, _ = story.place(layout_rect)
            story.draw(device, matrix)
            writer.end_page()
            pages += 1
