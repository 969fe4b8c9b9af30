"""外部ツールチェッカー

音声のデコードに使う FFmpeg / ffprobe が利用可能かを確認する。
画像・文書の変換はPythonライブラリのみで完結するため外部ツールは不要。
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True)
class CheckResult:
    """チェック結果"""

    name: str
    required: bool
    found: bool
    version: str | None
    message: str | None


@dataclass(frozen=True)
class DependencyInfo:
    """外部ツール情報"""

    name: str
    command: str
    version_flag: str
    required: bool


DEPENDENCIES: list[DependencyInfo] = [
    DependencyInfo(
        name="FFmpeg",
        command="ffmpeg",
        version_flag="-version",
        required=True,
    ),
    DependencyInfo(
        name="FFprobe",
        command="ffprobe",
        version_flag="-version",
        required=True,
    ),
]


def _extract_version(output: str) -> str | None:
    """コマンド出力からバージョン番号を抽出する"""
    patterns = [
        r"version\s+n?(\d+\.\d+(?:\.\d+)?)",
        r"(\d+\.\d+\.\d+)",
        r"(\d+\.\d+)",
    ]
    for pattern in patterns:
        match = re.search(pattern, output, re.IGNORECASE)
        if match:
            return match.group(1)
    return None


def check_dependency(info: DependencyInfo) -> CheckResult:
    """単一の外部ツールをチェックする"""
    try:
        result = subprocess.run(
            [info.command, info.version_flag],
            capture_output=True,
            text=True,
            timeout=10,
        )
        output = result.stdout + result.stderr
        return CheckResult(
            name=info.name,
            required=info.required,
            found=True,
            version=_extract_version(output),
            message=None,
        )
    except FileNotFoundError:
        return CheckResult(
            name=info.name,
            required=info.required,
            found=False,
            version=None,
            message=f"コマンド '{info.command}' が見つかりません",
        )
    except subprocess.TimeoutExpired:
        return CheckResult(
            name=info.name,
            required=info.required,
            found=False,
            version=None,
            message=f"コマンド '{info.command}' がタイムアウトしました",
        )
    except OSError as e:
        return CheckResult(
            name=info.name,
            required=info.required,
            found=False,
            version=None,
            message=f"コマンド実行エラー: {e}",
        )


def check_all_dependencies() -> list[CheckResult]:
    """全ての外部ツールをチェックする"""
    return [check_dependency(info) for info in DEPENDENCIES]


def audio_tools_available() -> bool:
    """音声変換に必要な外部ツールがすべて揃っているかを返す"""
    return all(result.found for result in check_all_dependencies() if result.required)
