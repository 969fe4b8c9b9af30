"""変換エンジン共通データ型モジュール

変換エンジンのすべてのコーデックが共有する入力・出力の型、
フォーマットの正規化、例外階層を定義する。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

# ポリシー定数（実行時に変更しない）
RASTER_QUALITY = 0.92
PDF_RENDER_SCALE = 1.5
RICH_TEXT_LAYOUT_WIDTH = 800
RICH_TEXT_PAGE_SCALE = 0.7
PAGE_MARGIN = 10
AUDIO_BLOCK_FRAMES = 1152
MP3_BIT_RATE = 128

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
ZIP_MIME = "application/zip"
TEXT_MIME = "text/plain"


class FormatCategory(Enum):
    """変換元ファイルの大分類

    コーデックファミリーの選択に使用する。
    プレーンテキストとDOCXはPAGE_DOCUMENTに含まれる。
    """

    IMAGE = "image"
    PAGE_DOCUMENT = "page_document"
    AUDIO = "audio"
    VIDEO = "video"
    ARCHIVE = "archive"
    UNKNOWN = "unknown"


class UnknownFormatError(ValueError):
    """フォーマットトークンを解釈できない場合のエラー"""

    pass


class TargetFormat(Enum):
    """変換先フォーマット

    正規化済みのフォーマットトークンを表す閉じた列挙型。
    文字列トークンは必ずparse()を経由してから比較する。
    """

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"
    BMP = "bmp"
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    WAV = "wav"
    MP3 = "mp3"
    FLAC = "flac"
    MP4 = "mp4"
    MOV = "mov"
    MKV = "mkv"
    ZIP = "zip"
    SEVEN_ZIP = "7z"

    @classmethod
    def parse(cls, token: str) -> TargetFormat:
        """フォーマットトークンを正規化して列挙値に変換する

        大文字小文字を区別せず、先頭のドットと前後の空白を無視する。
        "jpg" と "jpeg" はどちらもJPEGになる。

        Args:
            token: フォーマットトークン（例: "JPG", ".png", "wav"）

        Returns:
            対応するTargetFormat

        Raises:
            UnknownFormatError: 未知のトークンの場合
        """
        normalized = token.strip().lower().lstrip(".")
        normalized = _FORMAT_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError as e:
            raise UnknownFormatError(f"未対応のフォーマットです: {token!r}") from e

    @property
    def mime_type(self) -> str:
        """このフォーマットのMIMEタイプを返す"""
        return _MIME_TYPES[self]

    @property
    def is_raster(self) -> bool:
        """ラスター画像フォーマットかどうかを返す"""
        return self in RASTER_FORMATS

    @property
    def is_lossy(self) -> bool:
        """品質係数を使う非可逆フォーマットかどうかを返す"""
        return self in (TargetFormat.JPEG, TargetFormat.WEBP)

    @property
    def supports_alpha(self) -> bool:
        """アルファチャンネルを保存できるかどうかを返す"""
        return self not in (TargetFormat.JPEG, TargetFormat.BMP)


_FORMAT_ALIASES: dict[str, str] = {
    "jpg": "jpeg",
    "jpe": "jpeg",
    "text": "txt",
    "7zip": "7z",
}

_MIME_TYPES: dict[TargetFormat, str] = {
    TargetFormat.JPEG: "image/jpeg",
    TargetFormat.PNG: "image/png",
    TargetFormat.WEBP: "image/webp",
    TargetFormat.GIF: "image/gif",
    TargetFormat.BMP: "image/bmp",
    TargetFormat.PDF: PDF_MIME,
    TargetFormat.DOCX: DOCX_MIME,
    TargetFormat.TXT: TEXT_MIME,
    TargetFormat.WAV: "audio/wav",
    TargetFormat.MP3: "audio/mp3",
    TargetFormat.FLAC: "audio/flac",
    TargetFormat.MP4: "video/mp4",
    TargetFormat.MOV: "video/quicktime",
    TargetFormat.MKV: "video/x-matroska",
    TargetFormat.ZIP: ZIP_MIME,
    TargetFormat.SEVEN_ZIP: "application/x-7z-compressed",
}

RASTER_FORMATS: frozenset[TargetFormat] = frozenset(
    {
        TargetFormat.JPEG,
        TargetFormat.PNG,
        TargetFormat.WEBP,
        TargetFormat.GIF,
        TargetFormat.BMP,
    }
)


@dataclass(frozen=True)
class SourceFile:
    """変換元ファイル

    呼び出し側が所有するバイト列と、宣言されたMIMEタイプ、元のファイル名を保持する。
    ファイル名は拡張子と出力ファイル名の導出にのみ使用する。

    Attributes:
        data: ファイルのバイト列
        mime_type: 宣言されたMIMEタイプ（不明な場合は空文字列）
        name: 元のファイル名
    """

    data: bytes
    mime_type: str
    name: str

    @property
    def extension(self) -> str:
        """小文字化した拡張子（ドットなし）を返す。拡張子がなければ空文字列"""
        if "." not in self.name:
            return ""
        return self.name.rsplit(".", 1)[1].lower()


class FailureKind(Enum):
    """変換失敗の種類"""

    UNSUPPORTED_CONVERSION = "unsupported_conversion"
    DECODE_FAILURE = "decode_failure"
    RENDER_FAILURE = "render_failure"
    ENCODE_FAILURE = "encode_failure"
    EMPTY_RESULT = "empty_result"


@dataclass(frozen=True)
class ConversionSuccess:
    """変換成功結果

    Attributes:
        data: 変換後のバイト列
        mime_type: 変換後のMIMEタイプ
    """

    data: bytes
    mime_type: str

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class ConversionFailure:
    """変換失敗結果

    Attributes:
        kind: 失敗の種類
        message: 詳細メッセージ
    """

    kind: FailureKind
    message: str

    @property
    def is_success(self) -> bool:
        return False


ConversionOutcome = ConversionSuccess | ConversionFailure


class ConversionError(Exception):
    """コーデック内部の変換エラーの基底クラス"""

    kind: FailureKind = FailureKind.ENCODE_FAILURE


class UnsupportedConversionError(ConversionError):
    """コーデックが指定された変換先に対応していない"""

    kind = FailureKind.UNSUPPORTED_CONVERSION


class DecodeFailure(ConversionError):
    """変換元バイト列を宣言された形式として解析できない"""

    kind = FailureKind.DECODE_FAILURE


class RenderFailure(ConversionError):
    """デコード後のレイアウト・ラスタライズに失敗した"""

    kind = FailureKind.RENDER_FAILURE


class EncodeFailure(ConversionError):
    """出力のシリアライズに失敗した"""

    kind = FailureKind.ENCODE_FAILURE


class EmptyResultError(ConversionError):
    """成功扱いだが出力が空だった"""

    kind = FailureKind.EMPTY_RESULT


@dataclass(frozen=True)
class PcmAudioBuffer:
    """デコード済みPCM音声

    チャンネルごとにfloat32のサンプル列を持つ。
    すべてのチャンネルは同じ長さでなければならない。

    Attributes:
        channels: チャンネルごとのサンプル列（値域は概ね[-1.0, 1.0]）
        sample_rate: サンプルレート（Hz）
    """

    channels: tuple[np.ndarray, ...]
    sample_rate: int

    def __post_init__(self) -> None:
        if not self.channels:
            raise ValueError("チャンネルが1つ以上必要です")
        if self.sample_rate <= 0:
            raise ValueError(f"サンプルレートが不正です: {self.sample_rate}")
        lengths = {len(channel) for channel in self.channels}
        if len(lengths) != 1:
            raise ValueError(f"チャンネル間でフレーム数が一致しません: {sorted(lengths)}")

    @classmethod
    def from_samples(cls, channels: list[list[float]], sample_rate: int) -> PcmAudioBuffer:
        """Pythonのリストからバッファを作成する"""
        return cls(
            channels=tuple(np.asarray(channel, dtype=np.float32) for channel in channels),
            sample_rate=sample_rate,
        )

    @property
    def channel_count(self) -> int:
        """チャンネル数を返す"""
        return len(self.channels)

    @property
    def frame_count(self) -> int:
        """フレーム数（チャンネルあたりのサンプル数）を返す"""
        return len(self.channels[0])

    @property
    def duration_seconds(self) -> float:
        """再生時間（秒）を返す"""
        return self.frame_count / self.sample_rate


def output_filename(source_name: str, target_token: str) -> str:
    """変換後のファイル名を導出する

    元のファイル名の最後の拡張子を、小文字化した変換先トークンで置き換える。

    Args:
        source_name: 元のファイル名
        target_token: 呼び出し側が指定した変換先トークン

    Returns:
        出力ファイル名（例: "photo.PNG", "JPG" -> "photo.jpg"）
    """
    stem = source_name.rsplit(".", 1)[0] if "." in source_name else source_name
    if not stem:
        stem = source_name
    return f"{stem}.{target_token.strip().lower().lstrip('.')}"
