"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.tree import Tree

from ychart.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from ychart.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    roots = result.data.get("roots")
    if isinstance(roots, list) and roots:
        return "\n".join(str(root) for root in roots)
    if "output" in result.data:
        return str(result.data["output"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="ychart.ok")
    op = Text(f"  {result.op}", style="ychart.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="ychart.key")
    if key in ("id", "ids"):
        v = Text(_plain(value), style="ychart.id")
    elif key in ("path", "output"):
        v = Text(str(value), style="ychart.path")
    else:
        v = Text(_plain(value))
    console.print(Text.assemble(k, v))


def _plain(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return _json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    if span_data.get("annotations"):
        extras = [f"{ak}={av}" for ak, av in span_data["annotations"].items()]
        line += f"  ({', '.join(extras)})"

    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _node_label(node: dict[str, Any]) -> Text:
    label = Text()
    label.append(str(node.get("id", "?")), style="ychart.id")
    if node.get("name") is not None:
        label.append(f"  {node['name']}", style="ychart.name")
    if node.get("title") is not None:
        label.append(f"  ({node['title']})", style="ychart.title")
    return label


def _add_branch(tree: Tree, node: dict[str, Any]) -> None:
    branch = tree.add(_node_label(node))
    for child in node.get("children", []):
        _add_branch(branch, child)


def _render_warnings(console: Console, warnings: list[str]) -> None:
    for warning in warnings:
        console.print(f"  [ychart.warning]warning[/ychart.warning]: {escape(warning)}")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="ychart.error")
    op = Text(f"  {result.op}", style="ychart.op")
    sep = Text(" — ")
    console.print(label, op, sep, Text(msg))

    if err is None:
        return
    # Validation errors are shown in every output mode.
    for line in err.detail.get("errors", []):
        console.print(f"  [ychart.error]error[/ychart.error]: {escape(line)}")
    _render_warnings(console, result.warnings)

    extra = {k: v for k, v in err.detail.items() if k not in ("errors", "issues")}
    if verbose and extra:
        console.print(Text("  detail:", style="dim"))
        for k, v in extra.items():
            console.print(f"    {k}: {v}")


# ── Chart renderers ───────────────────────────────────────────────────


def _render_refresh(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a parse/validate/render pass summary."""
    _status_line(console, result)
    d = result.data
    for key in ("records", "view", "roots"):
        if key in d:
            _field(console, key, d[key])
    if verbose:
        _render_meta(console, result)


def _render_show(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the record hierarchy as a tree, one branch per root."""
    forest = result.data.get("tree", [])
    if not forest:
        console.print("No records.")
        return
    tree = Tree(Text(f"{result.data.get('records', 0)} records", style="ychart.root"))
    for root in forest:
        _add_branch(tree, root)
    console.print(tree)
    if verbose:
        _render_meta(console, result)


def _render_select(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render node details as a panel."""
    fields: dict[str, Any] = result.data.get("fields", {})
    lines = [f"{key}: {_plain(value)}" for key, value in fields.items()]
    name = fields.get("name")
    title = f"{result.data.get('id', '?')} — {name}" if name else str(result.data.get("id", "?"))
    body = Text("\n".join(lines))
    console.print(Panel(body, title=Text(title), border_style="dim", expand=False))


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render validation results."""
    errors: list[str] = result.data.get("errors", [])
    warnings: list[str] = result.data.get("warnings", [])
    records = result.data.get("records", 0)

    if not errors and not warnings:
        console.print(f"[ychart.ok]OK[/ychart.ok]  {records} records, no issues found.")
        return

    for line in errors:
        console.print(f"  [ychart.error]error[/ychart.error]: {escape(line)}")
    _render_warnings(console, warnings)
    console.print(f"\n{len(errors)} errors, {len(warnings)} warnings")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render gestures, formatting and position changes."""
    _status_line(console, result)
    for key in ("id", "ids", "direction", "view", "changed", "records", "x", "y", "rendered"):
        if key in result.data:
            _field(console, key, result.data[key])
    if verbose:
        _render_meta(console, result)


def _render_export(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render export/init results with the output path."""
    _status_line(console, result)
    for key in ("output", "path", "view", "records", "errors"):
        if key in result.data:
            _field(console, key, result.data[key])
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Text -> chart
    "refresh": _render_refresh,
    "load_document": _render_refresh,
    "show": _render_show,
    "select": _render_select,
    "check": _render_check,
    # Chart -> text
    "move_sibling": _render_mutation,
    "swap_records": _render_mutation,
    "format_document": _render_mutation,
    "switch_view": _render_mutation,
    "set_position": _render_mutation,
    "reset_positions": _render_mutation,
    # Files
    "export_html": _render_export,
    "init": _render_export,
}
