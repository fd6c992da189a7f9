"""Rich renderers for CLI output."""

from .result_renderer import render_batch, render_brackets, render_calculation, render_reconciliation

__all__ = ["render_batch", "render_brackets", "render_calculation", "render_reconciliation"]
