#!filepath: tzledger/cli.py
from pathlib import Path
from typing import Optional

import typer
from rich import print

from tzledger import __version__
from tzledger.config.app_config import AppConfig
from tzledger.utils.errors import TzLedgerError
from tzledger.utils.logger import init_logging
from tzledger.workflows.build_ledger import Mode, build_ledger_pipeline

app = typer.Typer(help="Node timezone ledger CLI")

ConfigOpt = typer.Option(None, "--config", "-c", help="YAML config path")
DataDirOpt = typer.Option(None, "--data-dir", help="Override data.data_dir")
StrictOpt = typer.Option(None, "--strict/--lenient", help="Deposit without registration: raise / drop")


def _run(mode: Mode, config: Optional[Path], data_dir: Optional[Path], strict: Optional[bool]):
    cfg = AppConfig.load(str(config) if config else None)
    init_logging(cfg.log)

    if mode is not Mode.COMPILE and not cfg.secret.etherscan_api_key:
        print("[yellow]ETHERSCAN_API_KEY not set, requests will be heavily throttled[/yellow]")

    pipeline, ctx = build_ledger_pipeline(cfg, mode, data_dir=data_dir, strict=strict)
    try:
        ctx = pipeline.run(ctx)
    except TzLedgerError as e:
        print(f"[red]{type(e).__name__}: {e}[/red]")
        raise typer.Exit(code=1)

    if ctx.abort_pipeline:
        print(f"[red]Aborted: {ctx.abort_reason}[/red]")
        raise typer.Exit(code=2)

    if ctx.result is not None:
        print(
            f"[green]ledger entries={len(ctx.result.ledger)} "
            f"dropped deposits={len(ctx.result.dropped_deposits)} -> {ctx.data_dir}[/green]"
        )


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def fetch(config: Optional[Path] = ConfigOpt, data_dir: Optional[Path] = DataDirOpt):
    """
    拉取合约 ABI 与 registration / setTimezone / deposit 交易并落盘
    """
    _run(Mode.FETCH, config, data_dir, None)


@app.command(name="compile")
def compile_(
    config: Optional[Path] = ConfigOpt,
    data_dir: Optional[Path] = DataDirOpt,
    strict: Optional[bool] = StrictOpt,
):
    """
    从已落盘的交易生成 ledger（不拉取交易，仅在 ABI cache 缺失时请求 Etherscan）
    """
    _run(Mode.COMPILE, config, data_dir, strict)


@app.command()
def run(
    config: Optional[Path] = ConfigOpt,
    data_dir: Optional[Path] = DataDirOpt,
    strict: Optional[bool] = StrictOpt,
):
    """
    拉取 + 生成 ledger
    """
    _run(Mode.RUN, config, data_dir, strict)


if __name__ == "__main__":
    app()

# python -m tzledger.cli compile --data-dir ./data
