"""変換エンジン共通データ型のテスト"""

import numpy as np
import pytest

from morphit.converter.base import (
    ConversionFailure,
    ConversionSuccess,
    DecodeFailure,
    EmptyResultError,
    EncodeFailure,
    FailureKind,
    PcmAudioBuffer,
    RenderFailure,
    SourceFile,
    TargetFormat,
    UnknownFormatError,
    UnsupportedConversionError,
    output_filename,
)


class TestTargetFormatParse:
    """TargetFormat.parseのテスト"""

    @pytest.mark.parametrize(
        "token,expected",
        [
            pytest.param("jpg", TargetFormat.JPEG, id="正常系: jpgはjpeg"),
            pytest.param("JPEG", TargetFormat.JPEG, id="正常系: 大文字jpeg"),
            pytest.param("Jpg", TargetFormat.JPEG, id="正常系: 大小混在jpg"),
            pytest.param(".png", TargetFormat.PNG, id="正常系: 先頭ドット"),
            pytest.param(" webp ", TargetFormat.WEBP, id="正常系: 前後の空白"),
            pytest.param("text", TargetFormat.TXT, id="正常系: textはtxt"),
            pytest.param("MP3", TargetFormat.MP3, id="正常系: 大文字mp3"),
            pytest.param("7zip", TargetFormat.SEVEN_ZIP, id="正常系: 7zipは7z"),
        ],
    )
    def test_parse_known_tokens(self, token: str, expected: TargetFormat) -> None:
        """既知のトークンを正規化できる"""
        assert TargetFormat.parse(token) == expected

    @pytest.mark.parametrize(
        "token",
        [
            pytest.param("", id="異常系: 空文字列"),
            pytest.param("svg", id="異常系: 未対応のsvg"),
            pytest.param("bogus", id="異常系: 未知のトークン"),
        ],
    )
    def test_parse_unknown_tokens(self, token: str) -> None:
        """未知のトークンはUnknownFormatError"""
        with pytest.raises(UnknownFormatError):
            TargetFormat.parse(token)

    def test_unknown_format_error_is_value_error(self) -> None:
        """UnknownFormatErrorはValueErrorのサブクラス"""
        assert issubclass(UnknownFormatError, ValueError)


class TestTargetFormatProperties:
    """TargetFormatのプロパティのテスト"""

    @pytest.mark.parametrize(
        "target,mime_type",
        [
            pytest.param(TargetFormat.JPEG, "image/jpeg", id="jpeg"),
            pytest.param(TargetFormat.PNG, "image/png", id="png"),
            pytest.param(TargetFormat.PDF, "application/pdf", id="pdf"),
            pytest.param(TargetFormat.TXT, "text/plain", id="txt"),
            pytest.param(TargetFormat.WAV, "audio/wav", id="wav"),
            pytest.param(TargetFormat.MP3, "audio/mp3", id="mp3"),
        ],
    )
    def test_mime_type(self, target: TargetFormat, mime_type: str) -> None:
        """フォーマットごとのMIMEタイプ"""
        assert target.mime_type == mime_type

    def test_every_format_has_mime_type(self) -> None:
        """すべてのフォーマットにMIMEタイプがある"""
        for target in TargetFormat:
            assert "/" in target.mime_type

    def test_raster_formats(self) -> None:
        """ラスター形式の判定"""
        raster = {t for t in TargetFormat if t.is_raster}
        assert raster == {
            TargetFormat.JPEG,
            TargetFormat.PNG,
            TargetFormat.WEBP,
            TargetFormat.GIF,
            TargetFormat.BMP,
        }

    def test_formats_without_alpha(self) -> None:
        """アルファを保存できないラスター形式はJPEGとBMP"""
        assert {t for t in TargetFormat if t.is_raster and not t.supports_alpha} == {
            TargetFormat.JPEG,
            TargetFormat.BMP,
        }
        assert TargetFormat.PNG.supports_alpha
        assert TargetFormat.WEBP.supports_alpha

    def test_lossy_formats(self) -> None:
        """非可逆形式はJPEGとWebP"""
        assert {t for t in TargetFormat if t.is_lossy} == {TargetFormat.JPEG, TargetFormat.WEBP}


class TestSourceFile:
    """SourceFileのテスト"""

    @pytest.mark.parametrize(
        "name,expected",
        [
            pytest.param("photo.PNG", "png", id="正常系: 大文字拡張子"),
            pytest.param("archive.tar.gz", "gz", id="正常系: 最後の拡張子"),
            pytest.param("README", "", id="正常系: 拡張子なし"),
        ],
    )
    def test_extension(self, name: str, expected: str) -> None:
        """拡張子は小文字化された最後の拡張子"""
        assert SourceFile(data=b"", mime_type="", name=name).extension == expected


class TestOutputFilename:
    """output_filenameのテスト"""

    @pytest.mark.parametrize(
        "source_name,target,expected",
        [
            pytest.param("photo.PNG", "JPG", "photo.jpg", id="正常系: 拡張子を小文字で置換"),
            pytest.param("report.docx", "pdf", "report.pdf", id="正常系: 文書"),
            pytest.param("archive.tar.gz", "zip", "archive.tar.zip", id="正常系: 最後の拡張子のみ"),
            pytest.param("README", "txt", "README.txt", id="正常系: 拡張子なし"),
            pytest.param(".bashrc", "txt", ".bashrc.txt", id="正常系: ドットファイル"),
        ],
    )
    def test_output_filename(self, source_name: str, target: str, expected: str) -> None:
        """最後の拡張子を変換先トークンで置き換える"""
        assert output_filename(source_name, target) == expected


class TestConversionOutcome:
    """変換結果型のテスト"""

    def test_success(self) -> None:
        """成功結果"""
        outcome = ConversionSuccess(data=b"abc", mime_type="image/png")
        assert outcome.is_success is True

    def test_failure(self) -> None:
        """失敗結果"""
        outcome = ConversionFailure(kind=FailureKind.DECODE_FAILURE, message="broken")
        assert outcome.is_success is False
        assert outcome.kind == FailureKind.DECODE_FAILURE

    @pytest.mark.parametrize(
        "error_class,kind",
        [
            pytest.param(UnsupportedConversionError, FailureKind.UNSUPPORTED_CONVERSION, id="未対応"),
            pytest.param(DecodeFailure, FailureKind.DECODE_FAILURE, id="デコード失敗"),
            pytest.param(RenderFailure, FailureKind.RENDER_FAILURE, id="描画失敗"),
            pytest.param(EncodeFailure, FailureKind.ENCODE_FAILURE, id="エンコード失敗"),
            pytest.param(EmptyResultError, FailureKind.EMPTY_RESULT, id="空の結果"),
        ],
    )
    def test_error_kind(self, error_class: type, kind: FailureKind) -> None:
        """例外クラスごとの失敗種別"""
        assert error_class("msg").kind == kind


class TestPcmAudioBuffer:
    """PcmAudioBufferのテスト"""

    def test_from_samples(self) -> None:
        """リストからバッファを作成できる"""
        pcm = PcmAudioBuffer.from_samples([[0.0, 0.5, 1.0], [0.0, -0.5, -1.0]], 8000)
        assert pcm.channel_count == 2
        assert pcm.frame_count == 3
        assert pcm.channels[0].dtype == np.float32

    def test_duration(self) -> None:
        """再生時間はフレーム数 / サンプルレート"""
        pcm = PcmAudioBuffer.from_samples([[0.0] * 4000], 8000)
        assert pcm.duration_seconds == pytest.approx(0.5)

    @pytest.mark.parametrize(
        "channels,sample_rate",
        [
            pytest.param([], 8000, id="異常系: チャンネルなし"),
            pytest.param([[0.0, 0.1], [0.0]], 8000, id="異常系: 長さ不一致"),
            pytest.param([[0.0]], 0, id="異常系: サンプルレート0"),
        ],
    )
    def test_invalid_buffer(self, channels: list[list[float]], sample_rate: int) -> None:
        """不正なバッファはValueError"""
        with pytest.raises(ValueError):
            PcmAudioBuffer.from_samples(channels, sample_rate)
