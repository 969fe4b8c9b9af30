"""音声変換モジュール

任意の音声コンテナをFFmpegでPCMにデコードし、
WAV（RIFF/WAVE, 16bit PCM）またはMP3（ブロック単位エンコード）に書き出す。

WAVのヘッダー構造（リトルエンディアン、全44バイト）:
    0   "RIFF"
    4   ファイル全長 - 8
    8   "WAVE"
    12  "fmt "  チャンクサイズ16, フォーマット1(リニアPCM), チャンネル数,
                サンプルレート, バイトレート, ブロックアライン, 16bit
    36  "data"  データサイズ（ファイル全長 - 44）
    44  インターリーブされた16bit符号付きサンプル
"""

from __future__ import annotations

import struct
import subprocess
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import ffmpeg  # type: ignore[import-untyped]
import lameenc  # type: ignore[import-untyped]
import numpy as np

from morphit.converter.base import (
    AUDIO_BLOCK_FRAMES,
    MP3_BIT_RATE,
    DecodeFailure,
    EncodeFailure,
    PcmAudioBuffer,
    SourceFile,
)

if TYPE_CHECKING:
    from morphit.logger import ConversionLogger

WAV_HEADER_SIZE = 44
WAV_BITS_PER_SAMPLE = 16
WAV_FORMAT_PCM = 1
_WAV_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")

# LAMEの品質設定（2=高品質）
MP3_QUALITY = 2


@dataclass(frozen=True)
class AudioStreamInfo:
    """音声ストリーム情報

    Attributes:
        channels: チャンネル数
        sample_rate: サンプルレート（Hz）
        codec_name: コーデック名
        duration_seconds: 再生時間（秒、不明な場合は0.0）
    """

    channels: int
    sample_rate: int
    codec_name: str
    duration_seconds: float


def wav_length(frame_count: int, channel_count: int) -> int:
    """WAVファイル全体のバイト数を返す"""
    return frame_count * channel_count * 2 + WAV_HEADER_SIZE


def quantize_for_wav(samples: np.ndarray) -> np.ndarray:
    """浮動小数点サンプルをWAV用の16bit整数に変換する

    [-1, 1]に制限した後、負値は32768倍、それ以外は32767倍して四捨五入する。
    符号付き16bitの両端(-32768, 32767)をオーバーフローなしで表現できる。
    """
    clipped = np.clip(np.nan_to_num(samples.astype(np.float64)), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.floor(scaled + 0.5).astype("<i2")


def quantize_for_mp3(samples: np.ndarray) -> np.ndarray:
    """浮動小数点サンプルをMP3エンコーダー入力用の16bit整数に変換する

    32767倍して飽和させる（WAVとは別の量子化経路）。
    """
    scaled = np.nan_to_num(samples.astype(np.float64)) * 32767.0
    return np.clip(scaled, -32768, 32767).astype("<i2")


def encode_wav(pcm: PcmAudioBuffer) -> bytes:
    """PCMバッファをRIFF/WAVE形式のバイト列に変換する

    Args:
        pcm: デコード済みPCM音声

    Returns:
        WAVファイルのバイト列（長さは frame_count * channel_count * 2 + 44）
    """
    channels = pcm.channel_count
    data_size = pcm.frame_count * channels * 2
    header = _WAV_HEADER.pack(
        b"RIFF",
        data_size + WAV_HEADER_SIZE - 8,
        b"WAVE",
        b"fmt ",
        16,
        WAV_FORMAT_PCM,
        channels,
        pcm.sample_rate,
        pcm.sample_rate * channels * 2,
        channels * 2,
        WAV_BITS_PER_SAMPLE,
        b"data",
        data_size,
    )
    # (frames, channels) の並びでフレームごとに全チャンネルを連続させる
    interleaved = np.stack([quantize_for_wav(channel) for channel in pcm.channels], axis=1)
    return header + interleaved.tobytes()


@contextmanager
def _scoped_temp_file(data: bytes, suffix: str) -> Iterator[Path]:
    """バイト列を一時ファイルに書き出し、スコープ終了時に削除する"""
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)
    try:
        yield tmp_path
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


class AudioCodec:
    """音声コーデック

    FFmpegで音声をデコードし、WAVまたはMP3にエンコードする。

    Attributes:
        timeout: FFmpeg実行のタイムアウト秒数
    """

    def __init__(self, timeout: int = 300, logger: ConversionLogger | None = None) -> None:
        """AudioCodecを初期化する

        Args:
            timeout: FFmpeg実行のタイムアウト秒数（デフォルト: 300秒）
            logger: 外部コマンドのログ出力先（オプション）
        """
        self._timeout = timeout
        self._logger = logger

    @property
    def timeout(self) -> int:
        """FFmpegのタイムアウト秒数を返す"""
        return self._timeout

    def decode(self, source: SourceFile) -> PcmAudioBuffer:
        """音声コンテナをチャンネルごとのPCMサンプル列にデコードする

        サンプルレートは元のまま維持する。

        Args:
            source: 音声の変換元ファイル

        Returns:
            デコード済みPCM音声

        Raises:
            DecodeFailure: 音声として解析できない、またはFFmpegが利用できない場合
        """
        suffix = f".{source.extension}" if source.extension else ""
        with _scoped_temp_file(source.data, suffix) as path:
            info = self.probe(path)
            raw = self._run_decoder(path, info)

        samples = np.frombuffer(raw, dtype="<f4")
        frame_count = len(samples) // info.channels
        frames = samples[: frame_count * info.channels].reshape(frame_count, info.channels)
        return PcmAudioBuffer(
            channels=tuple(frames[:, i].copy() for i in range(info.channels)),
            sample_rate=info.sample_rate,
        )

    def probe(self, path: Path) -> AudioStreamInfo:
        """ffprobeで最初の音声ストリームの情報を取得する

        Args:
            path: 音声ファイルのパス

        Returns:
            音声ストリーム情報

        Raises:
            DecodeFailure: 音声ストリームが見つからない、またはffprobeが失敗した場合
        """
        try:
            probe = ffmpeg.probe(str(path))
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
            raise DecodeFailure(f"音声情報を取得できません: {stderr.strip()}") from e
        except FileNotFoundError as e:
            raise DecodeFailure("ffprobeが見つかりません。FFmpegをインストールしてください。") from e

        stream = next(
            (s for s in probe.get("streams", []) if s.get("codec_type") == "audio"),
            None,
        )
        if stream is None:
            raise DecodeFailure("音声ストリームが見つかりません")

        try:
            channels = int(stream["channels"])
            sample_rate = int(stream["sample_rate"])
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeFailure(f"音声ストリーム情報が不正です: {e}") from e
        if channels <= 0 or sample_rate <= 0:
            raise DecodeFailure(f"音声ストリーム情報が不正です: {channels}ch, {sample_rate}Hz")

        return AudioStreamInfo(
            channels=channels,
            sample_rate=sample_rate,
            codec_name=stream.get("codec_name", "unknown"),
            duration_seconds=float(probe.get("format", {}).get("duration", 0) or 0),
        )

    def _run_decoder(self, path: Path, info: AudioStreamInfo) -> bytes:
        """FFmpegでfloat32リトルエンディアンのインターリーブPCMを取り出す"""
        stream = ffmpeg.input(str(path)).output(
            "pipe:",
            format="f32le",
            acodec="pcm_f32le",
            ac=info.channels,
            ar=info.sample_rate,
        )
        try:
            process = stream.run_async(pipe_stdout=True, pipe_stderr=True)
        except FileNotFoundError as e:
            raise DecodeFailure("FFmpegが見つかりません。インストールしてください。") from e

        try:
            out, err = process.communicate(timeout=self._timeout)
        except subprocess.TimeoutExpired as e:
            process.kill()
            process.communicate()
            raise DecodeFailure(f"FFmpeg処理がタイムアウトしました（{self._timeout}秒）") from e

        stderr = err.decode("utf-8", errors="replace") if err else ""
        if self._logger is not None:
            self._logger.log_command(stream.compile(), stderr)
        if process.returncode != 0:
            raise DecodeFailure(f"音声をデコードできません: {stderr.strip()}")
        return out

    def to_wav(self, pcm: PcmAudioBuffer) -> bytes:
        """PCM音声をWAVに変換する"""
        return encode_wav(pcm)

    def to_block_encoded(self, pcm: PcmAudioBuffer) -> bytes:
        """PCM音声をMP3に変換する

        1152フレームごとのブロックに分けてエンコーダーへ渡し、
        得られた空でないチャンクを順に連結する。最後に一度だけフラッシュする。
        フレームが0件の場合はエンコーダーを使わず空のバイト列を返す。
        モノラルは1チャンネル、ステレオ以上は先頭2チャンネル（左右）でエンコードする。

        Args:
            pcm: デコード済みPCM音声

        Returns:
            MP3のバイト列

        Raises:
            EncodeFailure: エンコーダーがエラーを返した場合
        """
        try:
            return b"".join(self._encode_blocks(pcm))
        except (RuntimeError, ValueError) as e:
            raise EncodeFailure(f"MP3エンコードに失敗しました: {e}") from e

    def _encode_blocks(self, pcm: PcmAudioBuffer) -> Iterator[bytes]:
        """ブロックごとのエンコード結果を発行順に返す"""
        # 1ブロックも渡していないエンコーダーはフラッシュできない
        if pcm.frame_count == 0:
            return

        stereo = pcm.channel_count >= 2
        left = quantize_for_mp3(pcm.channels[0])
        right = quantize_for_mp3(pcm.channels[1]) if stereo else None

        encoder = lameenc.Encoder()
        encoder.set_bit_rate(MP3_BIT_RATE)
        encoder.set_in_sample_rate(pcm.sample_rate)
        encoder.set_channels(2 if stereo else 1)
        encoder.set_quality(MP3_QUALITY)

        for start in range(0, pcm.frame_count, AUDIO_BLOCK_FRAMES):
            end = start + AUDIO_BLOCK_FRAMES
            if right is None:
                block = left[start:end]
            else:
                block = np.column_stack((left[start:end], right[start:end]))
            chunk = encoder.encode(np.ascontiguousarray(block).tobytes())
            if chunk:
                yield bytes(chunk)

        tail = encoder.flush()
        if tail:
            yield bytes(tail)
