"""CLI entry point for MorphIt."""

import mimetypes
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from morphit import __version__
from morphit.config import ConfigError, MorphitConfig, get_default_config, load_config
from morphit.converter.audio import AudioCodec
from morphit.converter.base import FormatCategory, SourceFile, output_filename
from morphit.converter.classifier import classify
from morphit.converter.router import ConversionRouter, UnsupportedConversion
from morphit.doctor import audio_tools_available, check_all_dependencies
from morphit.logger import ConversionLogger, LogConfig, VerboseLevel
from morphit.pipeline import ConversionPipeline, ConversionRequest
from morphit.types import ExitCode

app = typer.Typer(help="ファイルを別の形式に変換するCLIツール")
console = Console()

# formatsコマンドで一覧表示する (大分類, 代表拡張子) の組
_FORMAT_ROWS: list[tuple[FormatCategory, str]] = [
    (FormatCategory.IMAGE, ""),
    (FormatCategory.PAGE_DOCUMENT, "pdf"),
    (FormatCategory.PAGE_DOCUMENT, "docx"),
    (FormatCategory.PAGE_DOCUMENT, "txt"),
    (FormatCategory.AUDIO, ""),
    (FormatCategory.VIDEO, ""),
    (FormatCategory.ARCHIVE, ""),
    (FormatCategory.UNKNOWN, ""),
]


def _format_size(size_bytes: int) -> str:
    """バイト数を人間が読みやすい形式に変換する"""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def _guess_mime(path: Path, mime: str | None) -> str:
    """指定がなければ拡張子からMIMEタイプを推測する"""
    if mime:
        return mime
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or ""


def _load_config_or_exit(config_path: Path | None) -> MorphitConfig:
    if config_path is None:
        return get_default_config()
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT) from e


@app.command()
def convert(
    source_path: Annotated[Path, typer.Argument(help="変換元ファイルパス")],
    to: Annotated[str, typer.Option("-t", "--to", help="変換先フォーマット（jpg, pdf, wav 等）")],
    output: Annotated[Path | None, typer.Option("-o", "--output", help="出力ファイルパス")] = None,
    mime: Annotated[
        str | None, typer.Option(help="MIMEタイプ（省略時は拡張子から推測）")
    ] = None,
    config_path: Annotated[Path | None, typer.Option("--config", help="設定ファイル")] = None,
    verbose: Annotated[int, typer.Option("-v", "--verbose", count=True, help="詳細ログ出力")] = 0,
    log_file: Annotated[Path | None, typer.Option(help="ログファイル出力先")] = None,
    force: Annotated[bool, typer.Option("-f", "--force", help="既存ファイルを上書き")] = False,
) -> None:
    """ファイルを指定した形式に変換する"""
    config = _load_config_or_exit(config_path)

    if not source_path.is_file():
        console.print(f"[red]Error: ファイルが見つかりません: {source_path}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT)

    source = SourceFile(
        data=source_path.read_bytes(),
        mime_type=_guess_mime(source_path, mime),
        name=source_path.name,
    )

    if output is None:
        output_dir = config.output.directory or source_path.parent
        output = output_dir / output_filename(source.name, to)
    if output.exists() and not (force or config.output.overwrite):
        console.print(f"[red]Error: 出力ファイルが既に存在します（--forceで上書き）: {output}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT)

    # -v指定がなければ設定ファイルの詳細度（QUIETを含む）を使う
    level = VerboseLevel(min(verbose, VerboseLevel.DEBUG) if verbose else config.logging.verbose)
    log_config = LogConfig(verbose_level=level, log_file=log_file or config.logging.log_file)

    with ConversionLogger(log_config) as logger:
        router = ConversionRouter(
            audio_codec=AudioCodec(timeout=config.timeouts.ffmpeg, logger=logger)
        )
        category = classify(source.mime_type, source.name)
        route = router.route(category, source.extension, to)
        if isinstance(route, UnsupportedConversion):
            console.print(f"[red]Error: {route.message}[/red]")
            raise typer.Exit(ExitCode.INVALID_INPUT)

        if category == FormatCategory.AUDIO and not audio_tools_available():
            console.print("[red]Error: 音声変換にはFFmpegが必要です（morphit doctorで確認）[/red]")
            raise typer.Exit(ExitCode.DEPENDENCY_ERROR)

        pipeline = ConversionPipeline(router=router, logger=logger)
        with console.status(f"{source.name} を変換中..."):
            outcome = pipeline.convert_sync(ConversionRequest(source=source, target=to))

        if not outcome.is_success:
            console.print(f"[red]変換失敗 ({outcome.kind.value}): {outcome.message}[/red]")
            raise typer.Exit(ExitCode.ERROR)

        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(outcome.data)
        logger.log_summary(output, len(outcome.data), outcome.mime_type)

    console.print(f"[green]変換完了: {output} ({_format_size(len(outcome.data))})[/green]")
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def formats(
    source_path: Annotated[
        Path | None, typer.Argument(help="対象ファイル（省略時は全分類を表示）")
    ] = None,
    mime: Annotated[
        str | None, typer.Option(help="MIMEタイプ（省略時は拡張子から推測）")
    ] = None,
) -> None:
    """変換可能なフォーマットを表示する"""
    router = ConversionRouter()

    if source_path is not None:
        category = classify(_guess_mime(source_path, mime), source_path.name)
        ext = source_path.suffix.lower().lstrip(".")
        rows = [(category, ext)]
        title = f"{source_path.name} の変換先"
    else:
        rows = _FORMAT_ROWS
        title = "変換可能なフォーマット"

    table = Table(title=title)
    table.add_column("分類", style="cyan")
    table.add_column("変換元", style="white")
    table.add_column("変換先", style="green")

    for category, ext in rows:
        targets = router.available_targets(category, ext)
        target_str = ", ".join(t.value for t in targets) if targets else "[dim]なし[/dim]"
        table.add_row(category.value, ext or "*", target_str)

    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def doctor() -> None:
    """音声変換に必要な外部ツールをチェックする"""
    results = check_all_dependencies()

    table = Table(title="外部ツールチェック結果")
    table.add_column("ステータス", justify="center")
    table.add_column("ツール名", justify="left")
    table.add_column("バージョン", justify="left")
    table.add_column("メッセージ", justify="left")

    has_missing_required = False

    for result in results:
        if result.found:
            status = "[green]✓[/green]"
        else:
            status = "[red]✗[/red]"
            if result.required:
                has_missing_required = True

        table.add_row(status, result.name, result.version or "-", result.message or "")

    console.print(table)

    if has_missing_required:
        console.print("\n[yellow]警告: FFmpegがないため音声変換は利用できません[/yellow]")
        raise typer.Exit(ExitCode.DEPENDENCY_ERROR)
    else:
        console.print("\n[green]すべての外部ツールが利用可能です[/green]")
        raise typer.Exit(ExitCode.SUCCESS)


def version_callback(value: bool) -> None:
    """バージョン表示コールバック"""
    if value:
        typer.echo(f"morphit {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="バージョンを表示する",
        ),
    ] = False,
) -> None:
    """MorphIt CLI - 画像・文書・音声ファイルの形式変換"""
    pass
