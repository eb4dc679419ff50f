from __future__ import annotations  # PDF export of interview analysis reports

from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from .models import AnalysisReport, AnswerAnalysis

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background

SOURCE_LABELS = {
    "real_conversation": "Live conversation transcript",
    "api_conversation": "Vendor API transcript",
    "provided_data": "Submitted answers",
    "fallback_enhanced": "Baseline analysis",
}

METRICS: Tuple[Tuple[str, str], ...] = (
    ("Pace", "pace"),
    ("Filler words", "fillerWords"),
    ("Clarity", "clarity"),
    ("Eye contact", "eyeContact"),
    ("Posture", "posture"),
)


def _width(pdf: FPDF) -> float:  # Effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


def _score(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"{float(value):.0f}/100"


class AnalysisPDF(FPDF):  # Report page with banner header and paginated footer
    def __init__(self, title: str) -> None:
        super().__init__()
        self.header_title = title

    @staticmethod
    def _latin(text: Any) -> str:  # Core fonts only cover latin-1
        value = "" if text is None else str(text)
        value = value.replace("\u2022", "-").replace("\u2019", "'").replace("\u2014", "-")
        return value.encode("latin-1", "ignore").decode("latin-1")

    def cell(self, w=None, h=None, text="", *args, **kwargs):  # noqa: D401
        return super().cell(w, h, self._latin(text), *args, **kwargs)

    def multi_cell(self, w, h=None, text="", *args, **kwargs):
        return super().multi_cell(w, h, self._latin(text), *args, **kwargs)

    def header(self) -> None:
        if self.page_no() == 1:
            self.set_fill_color(*ACCENT)
            self.rect(0, 0, self.w, 22, style="F")
            self.set_text_color(255, 255, 255)
            self.set_font("Helvetica", "B", 16)
            self.set_xy(self.l_margin, 7)
            self.cell(_width(self), 8, self.header_title)
            self.set_text_color(*TEXT)
            self.set_y(28)
            return
        self.set_text_color(80, 80, 80)
        self.set_font("Helvetica", "B", 11)
        self.set_xy(self.l_margin, 8)
        self.cell(_width(self), 6, self.header_title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_draw_color(*ACCENT)
        self.set_line_width(0.4)
        self.line(self.l_margin, self.get_y() + 1, self.w - self.r_margin, self.get_y() + 1)
        self.set_text_color(*TEXT)
        self.ln(5)

    def footer(self) -> None:
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font("Helvetica", "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: FPDF, title: str) -> None:
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font("Helvetica", "B", 13)
    pdf.cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: FPDF, rows: List[Tuple[str, str]]) -> None:  # Two-column label/value grid
    col = _width(pdf) / 2.0
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(col, 6, left[0], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, 6, right[0], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font("Helvetica", "B", 11)
        pdf.cell(col, 6, left[1], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, 6, right[1], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _render_overall(pdf: FPDF, report: AnalysisReport) -> None:
    top = pdf.get_y()
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, top, _width(pdf), 16, style="F")
    pdf.set_xy(pdf.l_margin + 6, top + 5)
    pdf.set_text_color(*MUTED)
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(_width(pdf) / 2, 6, "Overall Score")
    pdf.set_text_color(*ACCENT)
    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(_width(pdf) / 2 - 12, 6, _score(report.overallScore), align="R")
    pdf.set_y(top + 20)
    pdf.set_text_color(*TEXT)


def _render_metrics(pdf: FPDF, report: AnalysisReport) -> None:  # Metric table with bar gauges
    label_w = _width(pdf) * 0.3
    value_w = _width(pdf) * 0.15
    bar_w = _width(pdf) - label_w - value_w - 4
    pdf.set_font("Helvetica", "", 10)
    for idx, (label, attr) in enumerate(METRICS):
        value = float(getattr(report, attr))
        y = pdf.get_y()
        if idx % 2 == 0:
            pdf.set_fill_color(247, 250, 255)
            pdf.rect(pdf.l_margin, y, _width(pdf), 7, style="F")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*TEXT)
        pdf.cell(label_w, 7, label)
        pdf.cell(value_w, 7, _score(value))
        bar_x = pdf.l_margin + label_w + value_w + 2
        pdf.set_fill_color(*RULE)
        pdf.rect(bar_x, y + 2, bar_w, 3, style="F")
        pdf.set_fill_color(*ACCENT)
        pdf.rect(bar_x, y + 2, bar_w * max(0.0, min(value, 100.0)) / 100.0, 3, style="F")
        pdf.ln(7)
    pdf.ln(3)


def _render_bullets(pdf: FPDF, items: Sequence[str], empty: str) -> None:
    pdf.set_font("Helvetica", "", 10)
    if not items:
        pdf.set_text_color(*MUTED)
        pdf.set_x(pdf.l_margin)
        pdf.multi_cell(_width(pdf), 6, empty, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        return
    pdf.set_text_color(*TEXT)
    for item in items:
        pdf.set_x(pdf.l_margin)
        pdf.multi_cell(_width(pdf), 6, f"- {item}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def _render_answer(pdf: FPDF, index: int, entry: AnswerAnalysis) -> None:
    width = _width(pdf)
    if pdf.get_y() + 40 > pdf.page_break_trigger:
        pdf.add_page()
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*ACCENT)
    pdf.set_font("Helvetica", "B", 11)
    pdf.multi_cell(width, 6, f"Q{index}: {entry.question}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(60, 60, 60)
    pdf.set_font("Helvetica", "", 10)
    pdf.multi_cell(width, 5.5, f"A: {entry.answer or '-'}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(*TEXT)
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(width, 6, f"Score: {_score(entry.score)}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", "", 10)
    pdf.multi_cell(width, 5.5, entry.feedback, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    if entry.strengths:
        pdf.multi_cell(width, 5.5, "Strengths: " + "; ".join(entry.strengths), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    if entry.improvements:
        pdf.multi_cell(width, 5.5, "Improve: " + "; ".join(entry.improvements), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.line(pdf.l_margin, pdf.get_y() + 1, pdf.l_margin + width, pdf.get_y() + 1)
    pdf.ln(4)


def render_analysis_pdf(
    report: AnalysisReport,
    *,
    job_title: str,
    user_name: str,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Render an analysis report as a PDF document and return its bytes."""

    pdf = AnalysisPDF(f"{job_title} - {user_name} - Interview Feedback")
    pdf.alias_nb_pages()
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    stamp = (generated_at or datetime.now(timezone.utc)).strftime("%d %b %Y, %H:%M UTC")
    _section_title(pdf, "Session Overview")
    _meta_block(
        pdf,
        [
            ("Candidate", user_name),
            ("Role", job_title),
            ("Generated", stamp),
            ("Data source", SOURCE_LABELS.get(report.dataSource, report.dataSource)),
        ],
    )
    _render_overall(pdf, report)

    _section_title(pdf, "Delivery Metrics")
    _render_metrics(pdf, report)

    _section_title(pdf, "Summary")
    pdf.set_font("Helvetica", "", 10)
    pdf.set_x(pdf.l_margin)
    pdf.multi_cell(_width(pdf), 6, report.summary or "-", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)

    _section_title(pdf, "Recommendations")
    _render_bullets(pdf, report.recommendations, "No recommendations recorded.")
    pdf.ln(2)

    _section_title(pdf, "Answer Breakdown")
    for index, entry in enumerate(report.answerAnalysis, start=1):
        _render_answer(pdf, index, entry)

    return bytes(pdf.output())


__all__ = ["AnalysisPDF", "render_analysis_pdf"]
