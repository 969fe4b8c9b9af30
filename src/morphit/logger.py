"""ログ出力のインターフェース定義

このモジュールは、MorphItの変換処理のログ出力を定義する。
VerboseLevel (詳細ログレベル)に応じて標準出力への出力を制御し、
ログファイルが指定されていれば全レベルのメッセージをタイムスタンプ付きで書き出す。
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import TextIO


class VerboseLevel(IntEnum):
    """詳細ログレベル

    QUIET: エラーのみ出力
    NORMAL: 変換結果のサマリを出力
    VERBOSE: ルーティング結果も出力（-vオプション）
    DEBUG: 外部コマンド実行ログも出力（-vvオプション）
    """

    QUIET = -1
    NORMAL = 0
    VERBOSE = 1
    DEBUG = 2


@dataclass
class LogConfig:
    """ログ設定

    Attributes:
        verbose_level: ログの詳細度レベル
        log_file: ログ出力先ファイルパス（Noneの場合はファイル出力なし）
        use_emoji: emoji表示を使用するか
    """

    verbose_level: VerboseLevel = VerboseLevel.NORMAL
    log_file: Path | None = None
    use_emoji: bool = True


class ConversionLogger:
    """変換ログ出力クラス

    使用例:
        >>> config = LogConfig(verbose_level=VerboseLevel.VERBOSE)
        >>> with ConversionLogger(config) as logger:
        ...     logger.info("変換を開始します")
        ...     logger.verbose("photo.png を処理中")
    """

    _ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

    def __init__(self, config: LogConfig | None = None) -> None:
        """ロガーを初期化する

        Args:
            config: ログ設定（Noneの場合はデフォルト設定）
        """
        self._config = config or LogConfig()
        self._log_file: TextIO | None = None
        if self._config.log_file:
            # __exit__でファイルを閉じる
            self._config.log_file.parent.mkdir(parents=True, exist_ok=True)
            self._log_file = open(self._config.log_file, "a", encoding="utf-8")  # noqa: SIM115

    def __enter__(self) -> ConversionLogger:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """ログファイルを閉じる"""
        if self._log_file:
            self._log_file.close()
            self._log_file = None

    @property
    def config(self) -> LogConfig:
        """ログ設定を取得する"""
        return self._config

    def _print(self, message: str, file: TextIO | None = None) -> None:
        if file is None:
            file = sys.stdout
        print(message, file=file)

    def _log_to_file(self, level: str, message: str) -> None:
        if self._log_file:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            clean_message = self._strip_ansi(message)
            self._log_file.write(f"[{timestamp}] {level}: {clean_message}\n")
            self._log_file.flush()

    def _strip_ansi(self, text: str) -> str:
        return self._ANSI_ESCAPE_PATTERN.sub("", text)

    def info(self, message: str) -> None:
        """情報メッセージを出力する（NORMAL以上）"""
        if self._config.verbose_level >= VerboseLevel.NORMAL:
            self._print(message)
        self._log_to_file("INFO", message)

    def verbose(self, message: str) -> None:
        """詳細メッセージを出力する（VERBOSE以上）"""
        if self._config.verbose_level >= VerboseLevel.VERBOSE:
            self._print(message)
        self._log_to_file("VERBOSE", message)

    def debug(self, message: str) -> None:
        """デバッグメッセージを出力する（DEBUG以上）"""
        if self._config.verbose_level >= VerboseLevel.DEBUG:
            self._print(message)
        self._log_to_file("DEBUG", message)

    def warning(self, message: str) -> None:
        """警告メッセージを出力する（QUIET以外）"""
        if self._config.verbose_level > VerboseLevel.QUIET:
            self._print(f"警告: {message}")
        self._log_to_file("WARNING", message)

    def error(self, message: str) -> None:
        """エラーメッセージを標準エラー出力に出力する（常に出力）"""
        self._print(f"エラー: {message}", file=sys.stderr)
        self._log_to_file("ERROR", message)

    def log_command(self, command: list[str], output: str) -> None:
        """外部コマンド実行をログする（DEBUG以上）

        Args:
            command: 実行したコマンドとその引数
            output: コマンドの出力
        """
        self.debug(f"実行: {' '.join(command)}")
        if output:
            for line in output.splitlines():
                self.debug(f"  > {line}")

    def log_conversion(self, source_name: str, target: str, status: str) -> None:
        """ファイル変換をログする（VERBOSE以上）

        Args:
            source_name: 変換元ファイル名
            target: 変換先フォーマットまたはファイル名
            status: 変換ステータス
        """
        self.verbose(f"変換: {source_name} -> {target} [{status}]")

    def log_summary(self, output_path: Path, size_bytes: int, mime_type: str) -> None:
        """変換サマリを出力する（NORMAL以上）

        Args:
            output_path: 出力ファイルパス
            size_bytes: 出力サイズ（バイト）
            mime_type: 出力のMIMEタイプ
        """
        emoji = "✅" if self._config.use_emoji else "[OK]"
        self.info(f"{emoji} Conversion complete!")
        self.info(f"   Output: {output_path} ({size_bytes / 1024:.1f} KB, {mime_type})")
