"""
Reporting layer for Agent Trials.

Generates:
- JSON reports (machine-readable)
- Markdown reports (human-readable)
- Console summaries
"""

from .reporter import Reporter, Report

__all__ = [
    "Reporter",
    "Report",
]
