"""変換パイプライン

このモジュールは、1回の変換を最初から最後まで実行するConversionPipelineと、
呼び出し側の状態遷移を明示的に管理するConversionSessionを定義する。

Classifier -> Router -> Codec の順に処理し、コーデックの失敗はすべて
ConversionFailureに正規化して返す。パイプライン自体は状態を持たない。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

from morphit.converter.base import (
    ConversionError,
    ConversionFailure,
    ConversionOutcome,
    ConversionSuccess,
    FailureKind,
    SourceFile,
)
from morphit.converter.classifier import classify
from morphit.converter.router import ConversionRouter, UnsupportedConversion
from morphit.logger import ConversionLogger


@dataclass(frozen=True)
class ConversionRequest:
    """変換要求

    Attributes:
        source: 変換元ファイル
        target: 変換先フォーマットトークン（大文字小文字は区別しない）
    """

    source: SourceFile
    target: str


class ConversionPipeline:
    """変換パイプライン

    使用例:
        >>> pipeline = ConversionPipeline()
        >>> source = SourceFile(data=png_bytes, mime_type="image/png", name="photo.png")
        >>> outcome = pipeline.convert_sync(ConversionRequest(source, "jpg"))
        >>> outcome.is_success
        True
    """

    def __init__(
        self,
        router: ConversionRouter | None = None,
        logger: ConversionLogger | None = None,
    ) -> None:
        """パイプラインを初期化する

        Args:
            router: 使用するルーター（Noneの場合はデフォルトのコーデック構成）
            logger: ログ出力先（オプション）
        """
        self._router = router or ConversionRouter()
        self._logger = logger

    @property
    def router(self) -> ConversionRouter:
        """ルーターを取得する"""
        return self._router

    async def convert(self, request: ConversionRequest) -> ConversionOutcome:
        """1件の変換を実行する

        コーデック処理はワーカースレッドで実行し、その完了を待つ間だけ中断する。
        コーデックの失敗は例外として送出せず、ConversionFailureとして返す。

        Args:
            request: 変換要求

        Returns:
            ConversionSuccess または ConversionFailure
        """
        source = request.source
        category = classify(source.mime_type, source.name)
        route = self._router.route(category, source.extension, request.target)

        if isinstance(route, UnsupportedConversion):
            self._warn(route.message)
            return ConversionFailure(FailureKind.UNSUPPORTED_CONVERSION, route.message)

        if self._logger is not None:
            self._logger.verbose(f"{source.name}: {category.value} -> {route.name}")

        try:
            data = await asyncio.to_thread(route.run, source)
        except ConversionError as e:
            return self._fail(source, request.target, e.kind, str(e))
        except Exception as e:
            return self._fail(source, request.target, route.fallback_kind, f"{route.name}: {e}")

        if not data:
            return self._fail(
                source, request.target, FailureKind.EMPTY_RESULT, f"{route.name}の出力が空です"
            )

        if self._logger is not None:
            self._logger.log_conversion(source.name, route.target.value, "success")
        return ConversionSuccess(data=data, mime_type=route.mime_type)

    def convert_sync(self, request: ConversionRequest) -> ConversionOutcome:
        """同期コンテキストから1件の変換を実行する"""
        return asyncio.run(self.convert(request))

    def _fail(
        self,
        source: SourceFile,
        target: str,
        kind: FailureKind,
        message: str,
    ) -> ConversionFailure:
        if self._logger is not None:
            self._logger.log_conversion(source.name, target, kind.value)
        self._warn(message)
        return ConversionFailure(kind=kind, message=message)

    def _warn(self, message: str) -> None:
        if self._logger is not None:
            self._logger.warning(message)


class SessionState(Enum):
    """変換セッションの状態

    IDLE -> LOADED -> CONVERTING -> CONVERTED / FAILED の順に遷移する。
    CONVERTED と FAILED からは別の変換先で再変換でき、load() で別のファイルに差し替えられる。
    """

    IDLE = "idle"
    LOADED = "loaded"
    CONVERTING = "converting"
    CONVERTED = "converted"
    FAILED = "failed"


class SessionStateError(Exception):
    """現在の状態では実行できない操作"""

    pass


class ConversionInProgressError(SessionStateError):
    """変換中に別の操作を要求した"""

    pass


class ConversionSession:
    """呼び出し側が所有する変換セッション

    同時に実行できる変換は1件だけで、変換中の新しい要求は
    ConversionInProgressErrorで拒否する（待ち行列には入れない）。
    失敗した場合は変換結果のデータを保持しない。
    """

    def __init__(self, pipeline: ConversionPipeline | None = None) -> None:
        self._pipeline = pipeline or ConversionPipeline()
        self._state = SessionState.IDLE
        self._source: SourceFile | None = None
        self._outcome: ConversionOutcome | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def source(self) -> SourceFile | None:
        return self._source

    @property
    def outcome(self) -> ConversionOutcome | None:
        """直前の変換結果（未変換・変換中はNone）"""
        return self._outcome

    @property
    def converted(self) -> ConversionSuccess | None:
        """変換に成功している場合のみ結果を返す"""
        if isinstance(self._outcome, ConversionSuccess):
            return self._outcome
        return None

    def load(self, source: SourceFile) -> None:
        """変換元ファイルを読み込む

        Raises:
            ConversionInProgressError: 変換中の場合
        """
        self._ensure_not_converting()
        self._source = source
        self._outcome = None
        self._state = SessionState.LOADED

    async def convert(self, target: str) -> ConversionOutcome:
        """読み込み済みのファイルを変換する

        Args:
            target: 変換先フォーマットトークン

        Returns:
            変換結果

        Raises:
            ConversionInProgressError: 既に変換中の場合
            SessionStateError: ファイルが読み込まれていない場合
        """
        self._ensure_not_converting()
        if self._source is None:
            raise SessionStateError("変換元ファイルが読み込まれていません")

        self._state = SessionState.CONVERTING
        self._outcome = None
        try:
            outcome = await self._pipeline.convert(ConversionRequest(self._source, target))
        except BaseException:
            # キャンセル等で結果が得られなかった場合は読み込み直後の状態に戻す
            self._state = SessionState.LOADED
            raise

        self._outcome = outcome
        self._state = SessionState.CONVERTED if outcome.is_success else SessionState.FAILED
        return outcome

    def reset(self) -> None:
        """セッションを初期状態に戻す

        Raises:
            ConversionInProgressError: 変換中の場合
        """
        self._ensure_not_converting()
        self._source = None
        self._outcome = None
        self._state = SessionState.IDLE

    def _ensure_not_converting(self) -> None:
        if self._state == SessionState.CONVERTING:
            raise ConversionInProgressError("変換中のため、完了するまで新しい操作は実行できません")
