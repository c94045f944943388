from __future__ import annotations

"""
emission.cli.main
-----------------

Operator tooling for linear emission streams:
- Print the resolved configuration (defaults < config file < environment).
- Tabulate the claimable timeline of one entity across the window.
- Evaluate the calculator for an arbitrary (last, claimed, now) triple.
- Summarise a saved `EmissionStream.dump()` snapshot and re-check its invariants.

Examples
--------
# Resolved config as JSON
python -m emission.cli config

# Timeline with 10 points over the configured window
python -m emission.cli schedule --points 10

# Override the window on the fly (the t=3/5/12/13 walkthrough)
python -m emission.cli schedule --start 2 --end 12 --allocation 10 --points 10

# What can an entity that last accrued at t=3 with 1 claimed take at t=5?
python -m emission.cli peek --start 2 --end 12 --allocation 10 --last 3 --claimed 1 --at 5

# Inspect a snapshot written by EmissionStream.dump()
python -m emission.cli inspect state.json
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

import typer

from emission.config import EmissionConfig, from_env, from_file, load, pretty
from emission.errors import EmissionError
from emission.math import compute_claimable
from emission.types import StreamConfig

app = typer.Typer(
    name="emission",
    add_completion=False,
    no_args_is_help=True,
    help="Inspect linear emission schedules and saved stream state.",
)

# -------------------- utils --------------------


def _width(default: int = 100) -> int:
    try:
        return shutil.get_terminal_size((default, 20)).columns
    except OSError:
        return default


def _pad(s: str, n: int) -> str:
    if len(s) <= n:
        return s + " " * (n - len(s))
    if n <= 4:
        return s[:n]
    return s[: n - 1] + "…"


def _fail(msg: str) -> NoReturn:
    typer.secho(msg, fg=typer.colors.RED)
    raise typer.Exit(2)


def _resolve_config(config_file: Optional[Path]) -> EmissionConfig:
    try:
        if config_file is not None:
            return from_env(base=from_file(config_file))
        return load()
    except (EmissionError, FileNotFoundError) as e:
        _fail(f"config error: {e}")


def _schedule(
    cfg: EmissionConfig,
    start: Optional[int],
    end: Optional[int],
    allocation: Optional[int],
) -> StreamConfig:
    s = cfg.schedule
    try:
        return StreamConfig.create(
            start_time=s.start_time if start is None else start,
            end_time=s.end_time if end is None else end,
            allocation_per_entity=s.allocation_per_entity if allocation is None else allocation,
            entity_count=s.entity_count,
        )
    except EmissionError as e:
        _fail(str(e))


def _timeline(sc: StreamConfig, points: int) -> List[Dict[str, Any]]:
    """Cumulative claimable for an entity that never claimed, sampled evenly."""
    rows: List[Dict[str, Any]] = []
    seen = set()
    for i in range(points + 1):
        t = sc.start_time + (sc.window_length * i) // points
        if t in seen:
            continue
        seen.add(t)
        amount = compute_claimable(sc, sc.start_time, 0, t).claimable
        rows.append({
            "t": t,
            "elapsed": t - sc.start_time,
            "claimable": amount,
            "pct": round(100.0 * amount / sc.allocation_per_entity, 4),
        })
    return rows


def _print_rows(cols: List[tuple], rows: List[Dict[str, Any]]) -> None:
    header = " ".join(_pad(n, w) for n, w, _ in cols)
    typer.secho(header, bold=True)
    for r in rows:
        typer.echo(" ".join(_pad(fn(r), w) for _, w, fn in cols))


# -------------------- callback --------------------


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON/YAML config file (defaults to $EMISSION_CONFIG_FILE)."
    ),
) -> None:
    cfg = _resolve_config(config_file)
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = cfg


# -------------------- commands --------------------


@app.command("config")
def cmd_config(ctx: typer.Context) -> None:
    """Print the resolved configuration as JSON."""
    cfg: EmissionConfig = ctx.obj
    try:
        typer.echo(pretty(cfg))
    except EmissionError as e:
        _fail(str(e))


@app.command("schedule")
def cmd_schedule(
    ctx: typer.Context,
    start: Optional[int] = typer.Option(None, "--start", help="Override window start (UNIX seconds)."),
    end: Optional[int] = typer.Option(None, "--end", help="Override window end (UNIX seconds)."),
    allocation: Optional[int] = typer.Option(None, "--allocation", help="Override allocation per entity."),
    points: int = typer.Option(10, "--points", min=1, max=10_000, help="Number of intervals to sample."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Claimable-over-time for one entity that has never claimed."""
    sc = _schedule(ctx.obj, start, end, allocation)
    rows = _timeline(sc, points)
    if json_out:
        typer.echo(json.dumps({"config": sc.to_dict(), "points": rows}, indent=2, sort_keys=True))
        return
    typer.echo(
        f"window {sc.start_time}..{sc.end_time} ({sc.window_length}s)  "
        f"allocation {sc.allocation_per_entity}  rate {sc.emission_rate_per_second}/s"
    )
    cols = [
        ("T", 14, lambda r: str(r["t"])),
        ("ELAPSED", 12, lambda r: str(r["elapsed"])),
        ("CLAIMABLE", max(12, _width() - 44), lambda r: str(r["claimable"])),
        ("PCT", 10, lambda r: f"{r['pct']:.2f}%"),
    ]
    _print_rows(cols, rows)


@app.command("peek")
def cmd_peek(
    ctx: typer.Context,
    at: int = typer.Option(..., "--at", help="Evaluation time (UNIX seconds)."),
    last: Optional[int] = typer.Option(None, "--last", help="Last accrual time (defaults to window start)."),
    claimed: int = typer.Option(0, "--claimed", min=0, help="Amount claimed so far."),
    start: Optional[int] = typer.Option(None, "--start", help="Override window start."),
    end: Optional[int] = typer.Option(None, "--end", help="Override window end."),
    allocation: Optional[int] = typer.Option(None, "--allocation", help="Override allocation per entity."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Evaluate the emission calculator once."""
    sc = _schedule(ctx.obj, start, end, allocation)
    last_t = sc.start_time if last is None else last
    if last_t == at:
        amount, accrual_time = 0, last_t
    else:
        try:
            acc = compute_claimable(sc, last_t, claimed, at)
        except EmissionError as e:
            _fail(str(e))
        amount, accrual_time = acc.claimable, acc.accrual_time
    if json_out:
        typer.echo(json.dumps({"claimable": amount, "accrual_time": accrual_time}, sort_keys=True))
        return
    typer.echo(f"claimable={amount} accrual_time={accrual_time}")


@app.command("inspect")
def cmd_inspect(
    state_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON written from EmissionStream.dump()."),
    limit: int = typer.Option(50, "--limit", min=1, help="Max streams to list."),
    json_out: bool = typer.Option(False, "--json", help="Output the summary as JSON."),
) -> None:
    """Summarise a saved stream snapshot and check its invariants."""
    try:
        state = json.loads(state_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _fail(f"not a JSON snapshot: {e}")

    summary = summarize(state)
    if json_out:
        typer.echo(json.dumps(summary, indent=2, sort_keys=True))
    else:
        _print_summary(summary, limit)
    if summary["problems"]:
        raise typer.Exit(1)


# -------------------- inspect helpers --------------------


def summarize(state: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a dump to totals plus a list of invariant violations."""
    cfg = state.get("config") or {}
    fin = state.get("financing") or {}
    streams = state.get("streams") or {}
    allocation = int(cfg.get("allocation_per_entity", 0))
    start, end = int(cfg.get("start_time", 0)), int(cfg.get("end_time", 0))

    problems: List[str] = []
    ledger_sum = 0
    paused: List[int] = []
    rows: List[Dict[str, Any]] = []
    for key, s in sorted(streams.items(), key=lambda kv: int(kv[0])):
        claimed = int(s.get("claimed", 0))
        last = int(s.get("last_accrual_time", start))
        ledger_sum += claimed
        if s.get("is_paused"):
            paused.append(int(key))
        if claimed > allocation:
            problems.append(f"entity {key}: claimed {claimed} above allocation {allocation}")
        if not (start <= last <= end):
            problems.append(f"entity {key}: last_accrual_time {last} outside window")
        rows.append({"entity_id": int(key), "claimed": claimed, "last_accrual_time": last, "is_paused": bool(s.get("is_paused"))})

    total_claimed = int(fin.get("total_claimed", 0))
    total_deposited = int(fin.get("total_deposited", 0))
    if ledger_sum != total_claimed:
        problems.append(f"stream ledger sum {ledger_sum} != total_claimed {total_claimed}")
    total_allocation = int(cfg.get("total_allocation", 0))
    if total_deposited > total_allocation:
        problems.append(f"total_deposited {total_deposited} above total_allocation {total_allocation}")

    return {
        "state": (state.get("lifecycle") or {}).get("state", "unknown"),
        "now": state.get("now"),
        "streams": rows,
        "stream_count": len(rows),
        "paused_streams": paused,
        "ledger_sum": ledger_sum,
        "financing": fin,
        "token_balance": state.get("token_balance"),
        "roles": (state.get("access") or {}).get("roles", {}),
        "modules": (state.get("access") or {}).get("modules", []),
        "problems": problems,
    }


def _print_summary(summary: Dict[str, Any], limit: int) -> None:
    fin = summary["financing"]
    typer.secho(f"Lifecycle: {summary['state']}   now: {summary['now']}", bold=True)
    typer.echo(
        f"deposited={fin.get('total_deposited', 0)} claimed={fin.get('total_claimed', 0)} "
        f"withdrawn={fin.get('total_withdrawn', 0)} deadline={fin.get('deadline', 0)} "
        f"balance={summary['token_balance']}"
    )
    for role, addr in sorted(summary["roles"].items()):
        typer.echo(f"{role}: {addr}")
    if summary["modules"]:
        typer.echo("modules: " + ", ".join(summary["modules"]))
    typer.echo("")
    if not summary["streams"]:
        typer.echo("No streams touched yet.")
    else:
        cols = [
            ("ENTITY", 12, lambda r: str(r["entity_id"])),
            ("CLAIMED", 28, lambda r: str(r["claimed"])),
            ("LAST", 14, lambda r: str(r["last_accrual_time"])),
            ("PAUSED", 6, lambda r: "yes" if r["is_paused"] else "-"),
        ]
        _print_rows(cols, summary["streams"][:limit])
        if summary["stream_count"] > limit:
            typer.echo(f"... {summary['stream_count'] - limit} more")
    typer.echo("")
    if summary["problems"]:
        for p in summary["problems"]:
            typer.secho(f"INVARIANT: {p}", fg=typer.colors.RED)
    else:
        typer.secho("invariants ok", fg=typer.colors.GREEN)


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
