"""Report renderers."""

from diffuse.report.markdown import render_markdown
from diffuse.report.summary import ReportSummary, summarize

__all__ = ["ReportSummary", "render_markdown", "summarize"]
