"""Human-readable build reports.

:func:`render_result` picks a renderer by ``result.op`` (unknown ops get
a plain key/value dump) and returns the report as text.  Verbose reports
add per-unit progress and, when present, the build timings.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.text import Text

from chunkc.output.console import render_text

if TYPE_CHECKING:
    from rich.console import Console

    from chunkc.services.result import ServiceResult

Renderer = Callable[["ServiceResult", "Console", bool], None]

# Units slower than this are highlighted in the timings block.
SLOW_UNIT_MS = 100.0


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render *result* as plain text (no ANSI codes outside a terminal)."""
    if not result.ok:
        renderer: Renderer = _render_error
    else:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
    return render_text(lambda console: renderer(result, console, verbose))


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "chunkc.ok"), (f"  {result.op}", "chunkc.op")))


def _field(console: Console, key: str, value: Any) -> None:
    style = "chunkc.path" if key.endswith("_root") else ""
    console.print(Text.assemble((f"  {key}: ", "chunkc.key"), (str(value), style)))


def _render_timings(console: Console, timings: dict[str, Any]) -> None:
    """Total and phase times, then one line per unit with its stages."""
    console.print()
    header = Text.assemble(("  timings: ", "chunkc.key"), f"total {timings['total_ms']:.2f}ms")
    phases = timings.get("phases") or {}
    if phases:
        header.append(" (" + ", ".join(f"{k}={v:.2f}ms" for k, v in phases.items()) + ")")
    console.print(header)

    for unit in timings.get("units", []):
        total = unit["total_ms"]
        stages = ", ".join(f"{k}={v:.2f}" for k, v in unit["stages"].items())
        line = Text("    ")
        line.append(f"{total:>8.2f}ms", style="chunkc.slow" if total > SLOW_UNIT_MS else "dim")
        line.append("  ")
        line.append(unit["chunk"], style="chunkc.chunk")
        line.append(f"  ({stages}, artifacts={unit['artifacts']})")
        console.print(line)


def _render_units(console: Console, units: list[dict[str, Any]]) -> None:
    """Per-unit progress: chunk line, one line per write, one per load."""
    for unit in units:
        console.print(
            Text.assemble("chunk=", (unit["chunk"], "chunkc.chunk"), f" srcfile={unit['source']}")
        )
        for artifact in unit.get("artifacts", []):
            console.print(
                Text.assemble(
                    "  ",
                    (artifact["path"], "chunkc.path"),
                    (f" ({artifact['bytes']} bytes)", "chunkc.bytes"),
                )
            )
        for outcome in unit.get("verify", []):
            if outcome["ok"]:
                console.print(Text(f"    loaded {outcome['identifier']} as {outcome['instance']}"))
            else:
                console.print(
                    Text.assemble(
                        ("    failed to load ", "chunkc.error"),
                        f"{outcome['identifier']}: {outcome['error']}",
                    )
                )
        if not unit.get("ok", True):
            console.print(
                Text.assemble(
                    (f"  {unit.get('stage', 'unit')} failed: ", "chunkc.error"),
                    str(unit.get("error", "")),
                )
            )


def _render_error(result: ServiceResult, console: Console, verbose: bool) -> None:
    err = result.error
    message = err.message if err else "Unknown error"
    console.print(
        Text.assemble(("ERROR", "chunkc.error"), (f"  {result.op}", "chunkc.op"), f": {message}")
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(Text(f"    {key}: {value}"))
    if verbose and result.data.get("units"):
        _render_units(console, result.data["units"])


def _render_build(result: ServiceResult, console: Console, verbose: bool) -> None:
    d = result.data
    if verbose:
        _render_units(console, d.get("units", []))

    _status_line(console, result)
    _field(console, "compiler", d.get("compiler", ""))
    _field(console, "dest_root", d.get("dest_root", ""))
    units = f"{d.get('units_total', 0)} (ok {d.get('units_ok', 0)}, failed {d.get('units_failed', 0)})"
    _field(console, "units", units)
    _field(console, "artifacts", f"{d.get('artifacts_written', 0)} ({d.get('bytes_written', 0)} bytes)")
    if d.get("artifacts_verified") or d.get("artifacts_failed_verify"):
        verified = f"{d.get('artifacts_verified', 0)} (failed {d.get('artifacts_failed_verify', 0)})"
        _field(console, "verified", verified)
    if verbose and result.meta and "timings" in result.meta:
        _render_timings(console, result.meta["timings"])


def _render_generic(result: ServiceResult, console: Console, verbose: bool) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


_OP_RENDERERS: dict[str, Renderer] = {
    "build": _render_build,
}
