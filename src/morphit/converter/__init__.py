"""Converter module for MorphIt.

形式分類、変換ルーティング、および画像・ページ文書・テキスト・音声の各コーデックを提供する。
"""

from morphit.converter.audio import AudioCodec, AudioStreamInfo, encode_wav
from morphit.converter.base import (
    ConversionError,
    ConversionFailure,
    ConversionOutcome,
    ConversionSuccess,
    DecodeFailure,
    EmptyResultError,
    EncodeFailure,
    FailureKind,
    FormatCategory,
    PcmAudioBuffer,
    RenderFailure,
    SourceFile,
    TargetFormat,
    UnknownFormatError,
    UnsupportedConversionError,
    output_filename,
)
from morphit.converter.classifier import classify
from morphit.converter.document import PageDocumentCodec
from morphit.converter.image import ImageCodec
from morphit.converter.router import CodecOperation, ConversionRouter, UnsupportedConversion
from morphit.converter.text import TextDocumentCodec

__all__ = [
    "AudioCodec",
    "AudioStreamInfo",
    "CodecOperation",
    "ConversionError",
    "ConversionFailure",
    "ConversionOutcome",
    "ConversionRouter",
    "ConversionSuccess",
    "DecodeFailure",
    "EmptyResultError",
    "EncodeFailure",
    "FailureKind",
    "FormatCategory",
    "ImageCodec",
    "PageDocumentCodec",
    "PcmAudioBuffer",
    "RenderFailure",
    "SourceFile",
    "TargetFormat",
    "TextDocumentCodec",
    "UnknownFormatError",
    "UnsupportedConversion",
    "UnsupportedConversionError",
    "classify",
    "encode_wav",
    "output_filename",
]
