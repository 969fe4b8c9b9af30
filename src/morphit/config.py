"""Configuration module for MorphIt.

変換の固定ポリシー定数（倍率・品質・ブロックサイズ等）は設定対象外とし、
出力先・ログ・外部コマンドのタイムアウトのみをYAMLで設定できる。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class ConfigError(Exception):
    """設定ファイル読み込みエラー"""

    pass


@dataclass(frozen=True)
class OutputConfig:
    """出力設定"""

    directory: Path | None = None
    overwrite: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    """ログ設定"""

    verbose: int = 0
    log_file: Path | None = None


@dataclass(frozen=True)
class TimeoutConfig:
    """タイムアウト設定"""

    ffmpeg: int = 300


@dataclass(frozen=True)
class MorphitConfig:
    """ルート設定"""

    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)


def load_config(path: Path) -> MorphitConfig:
    """設定ファイルを読み込む

    Args:
        path: 設定ファイルパス

    Returns:
        MorphitConfig: 読み込んだ設定（デフォルトとマージ済み）

    Raises:
        ConfigError: ファイル読み込みまたはパースエラー
    """
    if not path.exists():
        raise ConfigError(f"設定ファイルが見つかりません: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML解析エラー: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("設定ファイルはYAMLのマッピング形式である必要があります")

    default = get_default_config()

    return MorphitConfig(
        output=_merge_output_config(data.get("output", {}), default.output),
        logging=_merge_logging_config(data.get("logging", {}), default.logging),
        timeouts=_merge_timeout_config(data.get("timeouts", {}), default.timeouts),
    )


def get_default_config() -> MorphitConfig:
    """デフォルト設定を取得する"""
    return MorphitConfig()


def _optional_path(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def _merge_output_config(data: dict[str, Any], default: OutputConfig) -> OutputConfig:
    """出力設定をマージする"""
    if not isinstance(data, dict):
        return default
    return OutputConfig(
        directory=_optional_path(data.get("directory", default.directory)),
        overwrite=bool(data.get("overwrite", default.overwrite)),
    )


def _merge_logging_config(data: dict[str, Any], default: LoggingConfig) -> LoggingConfig:
    """ログ設定をマージする"""
    if not isinstance(data, dict):
        return default
    verbose = data.get("verbose", default.verbose)
    if isinstance(verbose, bool) or not isinstance(verbose, int) or not -1 <= verbose <= 2:
        raise ConfigError(f"logging.verbose は -1 から 2 の整数である必要があります: {verbose!r}")
    return LoggingConfig(
        verbose=verbose,
        log_file=_optional_path(data.get("log_file", default.log_file)),
    )


def _merge_timeout_config(data: dict[str, Any], default: TimeoutConfig) -> TimeoutConfig:
    """タイムアウト設定をマージする"""
    if not isinstance(data, dict):
        return default
    ffmpeg_timeout = data.get("ffmpeg", default.ffmpeg)
    if not isinstance(ffmpeg_timeout, int) or ffmpeg_timeout <= 0:
        raise ConfigError(f"timeouts.ffmpeg は正の整数である必要があります: {ffmpeg_timeout!r}")
    return TimeoutConfig(ffmpeg=ffmpeg_timeout)
