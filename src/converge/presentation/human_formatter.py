"""Human-friendly output formatter - converts plans and reports to readable text."""

import json
import os
from typing import Any, List, Optional
from ..executor import ResourceStatus, RunReport
from ..planner import ActionType, AttributeChange, KNOWN_AFTER_APPLY, Plan, PlannedAction

_SYMBOLS = {
    ActionType.CREATE: "+",
    ActionType.UPDATE: "~",
    ActionType.REPLACE: "-/+",
    ActionType.DESTROY: "-",
    ActionType.NO_OP: " ",
}

_STATUS_LABELS = {
    ResourceStatus.APPLIED: ("✅", "[OK]"),
    ResourceStatus.FAILED: ("❌", "[FAIL]"),
    ResourceStatus.SKIPPED: ("⏭️ ", "[SKIP]"),
}


def _use_ascii(ascii_mode: Optional[bool] = None) -> bool:
    """Resolve whether to use ASCII output (checked at format time)."""
    if ascii_mode is not None:
        return bool(ascii_mode)
    return os.environ.get("CONVERGE_ASCII", "").lower() in ("1", "true", "yes")


def _box(title: str, width: int = 65, ascii_mode: bool = False) -> List[str]:
    """Return box-drawing header lines."""
    b = {"tl": "+", "tr": "+", "h": "-", "v": "|"} if ascii_mode else {"tl": "┌", "tr": "┐", "h": "─", "v": "│"}
    h = b["h"] * (width - 2)
    return [
        b["tl"] + h + b["tr"],
        f"{b['v']} {title:<{width - 4}} {b['v']}",
        ("+" if ascii_mode else "└") + h + ("+" if ascii_mode else "┘"),
        "",
    ]


def _value(value: Any) -> str:
    if value == KNOWN_AFTER_APPLY:
        return value
    return json.dumps(value, sort_keys=True, default=str)


def _change_line(action: PlannedAction, change: AttributeChange) -> str:
    suffix = "  # forces replacement" if change.forces_replacement else ""
    if action.action == ActionType.CREATE:
        return f"      {change.name} = {_value(change.after)}"
    if change.after is None and not change.known_after_apply:
        return f"      {change.name} = {_value(change.before)} -> null{suffix}"
    return f"      {change.name} = {_value(change.before)} -> {_value(change.after)}{suffix}"


def format_plan(plan: Plan, ascii_mode: Optional[bool] = None, show_unchanged: bool = False) -> str:
    """
    Render a plan the way an operator reads it before applying.
    
    Args:
        plan: Plan to render
        ascii_mode: Force ASCII box drawing (default: CONVERGE_ASCII env var)
        show_unchanged: Also list no-op resources
    """
    ascii_mode = _use_ascii(ascii_mode)
    lines = _box("converge plan", ascii_mode=ascii_mode)
    
    rewired = [str(action.address) for action in plan.actions if action.dependencies_changed]
    if not plan.has_changes:
        lines.append("No changes. Infrastructure matches the configuration.")
        if rewired:
            lines.append(f"Recorded dependencies will be updated for: {', '.join(rewired)}")
        return "\n".join(lines)
    
    for action in plan.actions:
        if not action.is_change and not show_unchanged:
            continue
        symbol = _SYMBOLS[action.action]
        label = "no changes" if not action.is_change else f"will be {action.action.value}d"
        if action.action == ActionType.DESTROY:
            label = "will be destroyed"
        elif action.action == ActionType.REPLACE:
            label = f"must be replaced ({', '.join(action.replace_reasons)})"
        lines.append(f"{symbol:>3} {action.address} {label}")
        if action.action != ActionType.DESTROY:
            for change in action.changes:
                lines.append(_change_line(action, change))
        lines.append("")
    
    if rewired:
        lines.append(f"Recorded dependencies will be updated for: {', '.join(rewired)}")
        lines.append("")
    
    summary = plan.summary()
    lines.append(
        f"Plan: {summary['create']} to create, {summary['update']} to update, "
        f"{summary['replace']} to replace, {summary['destroy']} to destroy, "
        f"{summary['no-op']} unchanged."
    )
    return "\n".join(lines)


def format_report(report: RunReport, ascii_mode: Optional[bool] = None) -> str:
    """Render every resource's terminal state, with error detail where present."""
    ascii_mode = _use_ascii(ascii_mode)
    lines = _box("converge apply", ascii_mode=ascii_mode)
    
    for outcome in report.outcomes:
        emoji, ascii_label = _STATUS_LABELS.get(outcome.status, ("", f"[{outcome.status.value.upper()}]"))
        marker = ascii_label if ascii_mode else emoji
        line = f"{marker} {outcome.address} ({outcome.action.value}): {outcome.status.value}"
        if outcome.error:
            line += f" - {outcome.error}"
        lines.append(line)
    
    lines.append("")
    counts = report.counts()
    lines.append(
        f"Apply {'complete' if report.succeeded else 'incomplete'}: "
        f"{counts.get('applied', 0)} applied, {counts.get('failed', 0)} failed, {counts.get('skipped', 0)} skipped."
    )
    if report.cancelled:
        lines.append("Run was cancelled; state reflects the resources applied before cancellation.")
    return "\n".join(lines)
