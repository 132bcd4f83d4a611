import asyncio, contextlib, logging, signal
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    Progress, BarColumn, TextColumn, TimeElapsedColumn, MofNCompleteColumn, SpinnerColumn
)

from ..adapters.hypersync_httpx import DEFAULT_URL, HttpxHypersync
from ..application.reporting import render_failures, render_report
from ..application.use_cases import build_decoder, scan_volumes
from ..config import DEFAULT_START_BLOCK, DEFAULT_WATCHED, TRANSFER_TOPIC0, USDC, RunConfig, validate
from ..domain.errors import ConfigurationError, RetrievalError, RunCancelled
from ..domain.models import PageRecord

EXIT_CONFIG = 2
EXIT_RETRIEVAL = 3
EXIT_CANCELLED = 130

app = typer.Typer(add_completion=False)
err_console = Console(stderr=True)


@app.callback()
def main() -> None:
    """hypervol: per-address ERC-20 and native transfer volume from HyperSync."""


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.command()
def scan(
    url: str = typer.Option(DEFAULT_URL, help="HyperSync endpoint"),
    token: list[str] = typer.Option([USDC], "--token", help="Token contract; repeat for several"),
    event: list[str] = typer.Option([TRANSFER_TOPIC0], "--event", help="Event topic0; repeat to OR"),
    address: list[str] = typer.Option([DEFAULT_WATCHED], "--address", help="Watched address; repeat for several"),
    from_block: int = typer.Option(DEFAULT_START_BLOCK, help="First block (inclusive)"),
    to_block: Optional[int] = typer.Option(None, help="Last block (exclusive); default is the archive height"),
    abi: Optional[Path] = typer.Option(None, help="JSON ABI for the token contracts; default is bundled ERC-20"),
    journal: Optional[Path] = typer.Option(None, help="Append one JSON line per page to this file"),
    api_token: Optional[str] = typer.Option(None, envvar="HYPERSYNC_API_TOKEN", help="Bearer token"),
    timeout: float = typer.Option(60.0, help="Per-request timeout in seconds"),
    log_level: str = typer.Option("WARNING", help="Python logging level"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a progress bar on stderr"),
):
    """Page through the block range and print transfer volume per watched address."""
    _setup_logging(log_level)
    cfg = RunConfig(
        url=url,
        token_addresses=tuple(token),
        event_signatures=tuple(event),
        watched_addresses=tuple(address),
        start_block=from_block,
        end_block=to_block,
        abi_path=abi,
        api_token=api_token,
        timeout_s=timeout,
        journal_path=journal,
    )
    try:
        vcfg = validate(cfg)
        decoder = build_decoder(vcfg)
    except ConfigurationError as e:
        err_console.print(f"[bold red]configuration error[/]: {e}")
        raise typer.Exit(EXIT_CONFIG)

    async def run():
        cancel = asyncio.Event()
        loop = asyncio.get_running_loop()
        # first Ctrl-C lets the in-flight page finish, then stops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signal.SIGINT, cancel.set)

        async with HttpxHypersync(cfg.url, api_token=cfg.api_token, timeout_s=cfg.timeout_s) as rpc:
            if not progress:
                return await scan_volumes(retrieval=rpc, cfg=vcfg, decoder=decoder, cancel_event=cancel)

            height = await rpc.archive_height()
            end = min(to_block, height) if to_block is not None else height
            bar = Progress(SpinnerColumn(),
                           TextColumn("[bold]scanning blocks[/]"),
                           BarColumn(),
                           MofNCompleteColumn(),
                           TextColumn("•"),
                           TimeElapsedColumn(),
                           console=err_console,
                           transient=True)
            with bar:
                task = bar.add_task("scan", total=max(0, end - from_block))

                def on_page(rec: PageRecord) -> None:
                    bar.update(task, completed=max(0, min(rec.next_block, end) - from_block))

                return await scan_volumes(retrieval=rpc, cfg=vcfg, decoder=decoder,
                                          cancel_event=cancel, on_page=on_page)

    try:
        result = asyncio.run(run())
    except RetrievalError as e:
        err_console.print(f"[bold red]retrieval error[/]: {e}")
        raise typer.Exit(EXIT_RETRIEVAL)
    except RunCancelled as e:
        err_console.print(f"[yellow]cancelled[/]: {e}; totals are partial and were not printed")
        raise typer.Exit(EXIT_CANCELLED)

    for line in render_report(result.aggregates, vcfg.watched):
        typer.echo(line)
    for line in render_failures(result.decode_failures):
        err_console.print(f"[yellow]decode failures[/] {line}")
    err_console.print(
        f"[bold]done[/]: {result.pages} page(s) • cursor={result.final_cursor:,} • height={result.archive_height:,}"
    )


if __name__ == "__main__":
    app()
