"""Render stored PageSpeed reports as single-page PDFs with reportlab."""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from typing import Any

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

MARGIN = 40
LABEL_WIDTH = 120
METRIC_LABEL_WIDTH = 80
METRIC_VALUE_OFFSET = 200
FOOTER_TEXT = "This report is generated using Google PageSpeed Insights API."

INK = colors.Color(0.07, 0.09, 0.15)
MUTED = colors.Color(0.38, 0.38, 0.45)
SUBTLE = colors.Color(0.25, 0.29, 0.37)
DIVIDER = colors.Color(0.85, 0.87, 0.9)
FOOTER = colors.Color(0.6, 0.6, 0.65)


def _safe(value: Any) -> str:
    if value is None:
        return "N/A"
    text = str(value)
    return text if text else "N/A"


def _format_time(value: Any) -> str:
    if not value:
        return "N/A"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S UTC")
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    return parsed.strftime("%Y-%m-%d %H:%M:%S UTC")


class _Writer:
    """Tracks the vertical cursor while drawing top to bottom."""

    def __init__(self, pdf: canvas.Canvas, width: float, height: float):
        self.pdf = pdf
        self.width = width
        self.y = height - MARGIN

    def text(self, value: str, size: int = 10, font: str = "Helvetica", color=INK, x=MARGIN):
        self.pdf.setFont(font, size)
        self.pdf.setFillColor(color)
        self.pdf.drawString(x, self.y, value)

    def heading(self, value: str, size: int):
        self.text(value, size=size, font="Helvetica-Bold")

    def row(self, label: str, value: str, label_width: int = LABEL_WIDTH):
        self.text(label, color=MUTED)
        self.text(value, x=MARGIN + label_width)

    def skip(self, amount: float):
        self.y -= amount


def generate_report_pdf(report: dict[str, Any]) -> bytes:
    """Return PDF bytes for ``{"url", "generated_at", "pagespeed"}``."""

    buffer = BytesIO()
    width, height = A4
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle("PageSpeed Report")
    writer = _Writer(pdf, width, height)

    pdf.setFont("Helvetica-Bold", 18)
    pdf.setFillColor(INK)
    pdf.drawCentredString(width / 2, writer.y, "PageSpeed Report")
    writer.skip(24)

    writer.text(f"Website URL: {_safe(report.get('url'))}", color=SUBTLE)
    writer.skip(14)
    writer.text(f"Generated at: {_format_time(report.get('generated_at'))}", color=SUBTLE)
    writer.skip(24)

    pdf.setStrokeColor(DIVIDER)
    pdf.setLineWidth(0.5)
    pdf.line(MARGIN, writer.y, width - MARGIN, writer.y)
    writer.skip(22)

    writer.heading("PageSpeed Insights", 14)
    writer.skip(18)

    pagespeed = report.get("pagespeed")
    if not pagespeed:
        writer.text("No PageSpeed data available.", color=colors.Color(0.4, 0.4, 0.4))
        writer.skip(18)
    else:
        writer.row("Lighthouse version:", _safe(pagespeed.get("lighthouse_version")))
        writer.skip(14)
        writer.row("Audit fetch time:", _format_time(pagespeed.get("fetch_time")))
        writer.skip(20)

        writer.heading("Summary Scores", 12)
        writer.skip(16)
        for label, key in (
            ("Performance", "performance_score"),
            ("SEO", "seo_score"),
            ("Accessibility", "accessibility_score"),
            ("Best Practices", "best_practices_score"),
        ):
            writer.row(f"{label}:", _safe(pagespeed.get(key)))
            writer.skip(14)
        writer.skip(12)

        writer.heading("Key Metrics", 12)
        writer.skip(16)
        metrics = pagespeed.get("metrics") or {}
        for label in ("FCP", "LCP", "CLS", "TBT"):
            metric = metrics.get(label) or {}
            value = metric.get("display_value")
            if value is None and metric.get("numeric_value") is not None:
                value = str(metric["numeric_value"])
            writer.row(f"{label}:", _safe(metric.get("title")), METRIC_LABEL_WIDTH)
            writer.text(_safe(value), x=MARGIN + METRIC_LABEL_WIDTH + METRIC_VALUE_OFFSET)
            writer.skip(14)

    pdf.setFont("Helvetica-Oblique", 8)
    pdf.setFillColor(FOOTER)
    pdf.drawString(MARGIN, MARGIN / 2, FOOTER_TEXT)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
