"""
ilock: command-line tool for the ILOCK token engine.

Commands:
  - ilock pools       Print the pool table (allocation, cliff, vest)
  - ilock schedule    Simulate a stakeholder's full vesting schedule
  - ilock config      Print the resolved engine configuration

Global options:
  --config PATH           TOML/JSON config file (env: ILOCK_CONFIG)
  --log-level TEXT        Log level (env: ILOCK_LOG_LEVEL)

Examples:
  ilock pools --json
  ilock schedule --share 1000000000 --pool TEAM
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Optional

import typer

from ilock.contract import ILockToken
from ilock.core import logging as ilog
from ilock.core.config import EngineConfig, build_clock, load_config
from ilock.core.errors import IlockError
from ilock.runtime.env import Env
from ilock.token.pools import PAYOUT_POOLS, POOL_TABLE, UNIT, parse_pool

app = typer.Typer(
    name="ilock",
    help="ILOCK token engine command-line interface",
    no_args_is_help=True,
    add_completion=False,
)


class GlobalContext:
    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.cfg: Optional[EngineConfig] = None

    def config(self) -> EngineConfig:
        if self.cfg is None:
            self.cfg = load_config(self.config_path)
        return self.cfg


_ctx = GlobalContext()


def _fail(err: IlockError) -> None:
    typer.echo(f"Error: {err.code}: {err.message}", err=True)
    raise typer.Exit(1)


def _sim_address(label: str) -> bytes:
    return hashlib.sha3_256(b"ilock-sim:" + label.encode()).digest()


@app.callback()
def main_callback(
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to a TOML or JSON config file", envvar="ILOCK_CONFIG"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Minimum log level", envvar="ILOCK_LOG_LEVEL"
    ),
) -> None:
    """ILOCK token engine tools."""
    _ctx.config_path = config
    _ctx.cfg = None
    try:
        cfg = _ctx.config()
    except IlockError as e:
        _fail(e)
    ilog.configure(
        json=None if cfg.log.format is None else cfg.log.format == "json",
        level=log_level or cfg.log.level,
        file_path=cfg.log.file,
    )


@app.command()
def pools(
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Print the fixed pool table."""
    rows = [
        {
            "index": int(s.pool),
            "pool": s.name,
            "tokens": s.token_allocation // UNIT,
            "cliff": s.cliff_periods,
            "vest": s.vest_periods,
            "payout": s.pool in PAYOUT_POOLS,
        }
        for s in POOL_TABLE
    ]
    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return
    typer.echo(f"{'POOL':<10} {'TOKENS':>13} {'CLIFF':>5} {'VEST':>5} PAYOUT")
    for r in rows:
        typer.echo(
            f"{r['pool']:<10} {r['tokens']:>13,} {r['cliff']:>5} {r['vest']:>5} {'yes' if r['payout'] else 'no'}"
        )


@app.command()
def schedule(
    share: int = typer.Option(..., "--share", help="Stakeholder share in base units"),
    pool: str = typer.Option("TEAM", "--pool", help="Pool name"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Register a stakeholder on a scratch token and pay out every period."""
    cfg = _ctx.config()
    env = Env(clock=build_clock(cfg.clock, manual=True))
    owner, holder = _sim_address("owner"), _sim_address("holder")
    try:
        p = parse_pool(pool)
        with env.calling(owner):
            token = ILockToken.from_config(env, (_sim_address("s2"), _sim_address("s3")), cfg)
            token.register_stakeholder(holder, share, p)
            env.clock.advance_period(POOL_TABLE[p].cliff_periods)
            payments = []
            while token.stakeholder_data(holder, p).remaining:
                amount = token.distribute_tokens(holder, p)
                payments.append({"period": token.months_passed(), "amount": amount})
                env.clock.advance_period()
    except IlockError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps({"pool": p.name, "share": share, "payments": payments}, indent=2))
        return
    for row in payments:
        typer.echo(f"period {row['period']:>3}: {row['amount']}")
    typer.echo(f"total: {sum(r['amount'] for r in payments)} in {len(payments)} payments")


@app.command("config")
def show_config() -> None:
    """Print the resolved configuration as JSON."""
    typer.echo(json.dumps(_ctx.config().to_dict(), indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
