"""変換ルーティングモジュール

(大分類, 変換元拡張子, 変換先フォーマット) の組から、
実行するコーデック操作をちょうど1つ選ぶ。
対応表にない組はUnsupportedConversionとして返し、例外は投げない。
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from morphit.converter.audio import AudioCodec
from morphit.converter.base import (
    FailureKind,
    FormatCategory,
    SourceFile,
    TargetFormat,
    UnknownFormatError,
)
from morphit.converter.document import PageDocumentCodec
from morphit.converter.image import ImageCodec
from morphit.converter.text import TextDocumentCodec

CodecCallable = Callable[[SourceFile], bytes]


@dataclass(frozen=True)
class CodecOperation:
    """選択されたコーデック操作

    Attributes:
        name: 操作名（ログ表示用）
        target: 正規化済みの変換先フォーマット
        run: 変換元ファイルを受け取りバイト列を返す関数
        mime_type: 出力のMIMEタイプ
        fallback_kind: 想定外の例外を正規化するときの失敗種別
    """

    name: str
    target: TargetFormat
    run: CodecCallable = field(repr=False, compare=False)
    mime_type: str
    fallback_kind: FailureKind = FailureKind.ENCODE_FAILURE


@dataclass(frozen=True)
class UnsupportedConversion:
    """対応するコーデックがないことを表す結果

    Attributes:
        category: 変換元の大分類
        source_extension: 変換元の拡張子
        target: 呼び出し側が指定した変換先トークン
    """

    category: FormatCategory
    source_extension: str
    target: str

    @property
    def message(self) -> str:
        """利用者向けのメッセージを返す"""
        ext = self.source_extension or "(拡張子なし)"
        return (
            f"未対応の変換です: {self.category.value} / {ext} -> {self.target.strip().lower()}"
        )


RouteResult = CodecOperation | UnsupportedConversion


class ConversionRouter:
    """変換ルーター

    対応表:
        IMAGE -> ラスター形式          : ImageCodec.raster_to_raster
        IMAGE -> pdf                   : ImageCodec.raster_to_page
        PAGE_DOCUMENT(pdf) -> ラスター : PageDocumentCodec.rasterize_first_page
        PAGE_DOCUMENT(docx) -> pdf     : PageDocumentCodec.synthesize_page_from_rich_text
        PAGE_DOCUMENT(docx) -> txt     : TextDocumentCodec.extract_plain_text
        AUDIO -> wav                   : AudioCodec.decode + to_wav
        AUDIO -> mp3                   : AudioCodec.decode + to_block_encoded
    それ以外（txt文書、動画、アーカイブ、不明）はすべて未対応。
    """

    def __init__(
        self,
        image_codec: ImageCodec | None = None,
        document_codec: PageDocumentCodec | None = None,
        text_codec: TextDocumentCodec | None = None,
        audio_codec: AudioCodec | None = None,
    ) -> None:
        self._image = image_codec or ImageCodec()
        self._document = document_codec or PageDocumentCodec()
        self._text = text_codec or TextDocumentCodec()
        self._audio = audio_codec or AudioCodec()

    def route(
        self,
        category: FormatCategory,
        source_extension: str,
        target_token: str,
    ) -> RouteResult:
        """コーデック操作を選択する

        副作用のない表引きのみを行う。

        Args:
            category: 変換元の大分類
            source_extension: 変換元の拡張子（大文字小文字は区別しない）
            target_token: 変換先フォーマットトークン

        Returns:
            選択されたCodecOperation、または UnsupportedConversion
        """
        unsupported = UnsupportedConversion(category, source_extension.lower(), target_token)
        try:
            target = TargetFormat.parse(target_token)
        except UnknownFormatError:
            return unsupported

        operation = self._select(category, source_extension.lower().lstrip("."), target)
        return operation if operation is not None else unsupported

    def _select(
        self,
        category: FormatCategory,
        ext: str,
        target: TargetFormat,
    ) -> CodecOperation | None:
        match category:
            case FormatCategory.IMAGE:
                return self._select_image(target)
            case FormatCategory.PAGE_DOCUMENT:
                return self._select_document(ext, target)
            case FormatCategory.AUDIO:
                return self._select_audio(target)
            case _:
                return None

    def _select_image(self, target: TargetFormat) -> CodecOperation | None:
        if target == TargetFormat.PDF:
            return CodecOperation(
                name="image.raster_to_page",
                target=target,
                run=self._image.raster_to_page,
                mime_type=target.mime_type,
            )
        if target.is_raster:
            return CodecOperation(
                name="image.raster_to_raster",
                target=target,
                run=lambda source: self._image.raster_to_raster(source, target),
                mime_type=target.mime_type,
            )
        return None

    def _select_document(self, ext: str, target: TargetFormat) -> CodecOperation | None:
        if ext == "pdf" and target.is_raster:
            return CodecOperation(
                name="document.rasterize_first_page",
                target=target,
                run=lambda source: self._document.rasterize_first_page(source, target),
                mime_type=target.mime_type,
                fallback_kind=FailureKind.RENDER_FAILURE,
            )
        if ext == "docx" and target == TargetFormat.PDF:
            return CodecOperation(
                name="document.synthesize_page_from_rich_text",
                target=target,
                run=self._document.synthesize_page_from_rich_text,
                mime_type=target.mime_type,
                fallback_kind=FailureKind.RENDER_FAILURE,
            )
        if ext == "docx" and target == TargetFormat.TXT:
            return CodecOperation(
                name="text.extract_plain_text",
                target=target,
                run=self._text.extract_plain_text,
                mime_type=target.mime_type,
                fallback_kind=FailureKind.DECODE_FAILURE,
            )
        return None

    def _select_audio(self, target: TargetFormat) -> CodecOperation | None:
        if target == TargetFormat.WAV:
            return CodecOperation(
                name="audio.to_wav",
                target=target,
                run=lambda source: self._audio.to_wav(self._audio.decode(source)),
                mime_type=target.mime_type,
            )
        if target == TargetFormat.MP3:
            return CodecOperation(
                name="audio.to_block_encoded",
                target=target,
                run=lambda source: self._audio.to_block_encoded(self._audio.decode(source)),
                mime_type=target.mime_type,
            )
        return None

    def available_targets(
        self,
        category: FormatCategory,
        source_extension: str = "",
    ) -> list[TargetFormat]:
        """変換元に対して実際に変換できるフォーマットの一覧を返す

        変換元自身のフォーマットは除外する。

        Args:
            category: 変換元の大分類
            source_extension: 変換元の拡張子

        Returns:
            変換可能なTargetFormatのリスト（列挙型の定義順）
        """
        ext = source_extension.lower().lstrip(".")
        try:
            own_format: TargetFormat | None = TargetFormat.parse(ext) if ext else None
        except UnknownFormatError:
            own_format = None

        return [
            target
            for target in TargetFormat
            if target != own_format and self._select(category, ext, target) is not None
        ]
