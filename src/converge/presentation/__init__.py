"""Presentation layer - human-readable formatting for plans and run reports."""

from .human_formatter import format_plan, format_report

__all__ = ["format_plan", "format_report"]
