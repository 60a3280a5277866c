"""
Course Plan Export Service - PDF generation and storage

Renders a plan in its Form's question order with:
- Title banner (course code and name)
- General information table (teacher, course, session, generation date)
- Each question with its answer and AI validation status
- Page numbering footer

Stored PDFs are written under EXPORT_DIR and served from /uploads/plans.
"""

import logging
import os
import re
import time
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from workflow.errors import ExportError

log = logging.getLogger(__name__)

EXPORT_DIR = Path(os.getenv("EXPORT_DIR", os.path.join("uploads", "plans")))
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")
EXPORT_URL_PREFIX = "/uploads/plans"

PRIMARY_COLOR = colors.Color(102 / 255, 126 / 255, 234 / 255)
TEXT_COLOR = colors.Color(51 / 255, 51 / 255, 51 / 255)
LIGHT_GRAY = colors.Color(248 / 255, 249 / 255, 250 / 255)

STATUS_COLORS = {
    "Conforme": colors.Color(40 / 255, 167 / 255, 69 / 255),
    "À améliorer": colors.Color(255 / 255, 193 / 255, 7 / 255),
    "Non conforme": colors.Color(220 / 255, 53 / 255, 69 / 255),
}
UNKNOWN_STATUS_COLOR = colors.Color(128 / 255, 128 / 255, 128 / 255)

FOOTER_TEXT = "Document généré automatiquement - Plateforme de Plans de Cours"


# ─── File naming ────────────────────────────────────────────────────────────────

def sanitize_filename_part(value: str) -> str:
    """Whitespace runs become '_' and anything outside [A-Za-z0-9_-] is dropped."""
    value = re.sub(r"\s+", "_", value or "")
    return re.sub(r"[^A-Za-z0-9_-]", "", value)


def build_pdf_filename(teacher_name: str, course_code: str, epoch_millis: Optional[int] = None) -> str:
    if epoch_millis is None:
        epoch_millis = int(time.time() * 1000)
    return f"{sanitize_filename_part(teacher_name)}_{sanitize_filename_part(course_code)}_{epoch_millis}.pdf"


# ─── Rendering ──────────────────────────────────────────────────────────────────

def _escape_html(text: str) -> str:
    """Escape HTML special characters so ReportLab Paragraph treats them as literal text."""
    if not text:
        return text or ""
    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    text = text.replace(">", "&gt;")
    return text


def _paragraph_text(text: str) -> str:
    return _escape_html(text).replace("\n", "<br/>")


def get_plan_styles():
    """Paragraph styles for the course plan document."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='PlanTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.white,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='PlanSubtitle',
        parent=styles['Normal'],
        fontSize=12,
        textColor=colors.white,
        alignment=TA_CENTER,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='SectionHeader',
        parent=styles['Heading2'],
        fontSize=14,
        textColor=TEXT_COLOR,
        alignment=TA_LEFT,
        spaceBefore=12,
        spaceAfter=8,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='QuestionTitle',
        parent=styles['Normal'],
        fontSize=11,
        textColor=PRIMARY_COLOR,
        fontName='Helvetica-Bold',
        leading=14,
    ))

    styles.add(ParagraphStyle(
        name='AnswerText',
        parent=styles['Normal'],
        fontSize=10,
        textColor=TEXT_COLOR,
        alignment=TA_JUSTIFY,
        leftIndent=10,
        spaceBefore=4,
        spaceAfter=4,
        fontName='Helvetica',
        leading=13,
    ))

    styles.add(ParagraphStyle(
        name='ValidationStatus',
        parent=styles['Normal'],
        fontSize=9,
        leftIndent=10,
        spaceAfter=10,
        fontName='Helvetica-Oblique',
    ))

    return styles


class NumberedCanvas(Canvas):
    """Canvas that defers page output until the total page count is known."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, page_count: int):
        self.saveState()
        width = A4[0]
        self.setFont('Helvetica', 8)
        self.setFillColor(colors.Color(150 / 255, 150 / 255, 150 / 255))
        self.drawCentredString(width / 2, 1.0 * cm, f"Page {self._pageNumber} / {page_count}")
        self.drawCentredString(width / 2, 0.6 * cm, FOOTER_TEXT)
        self.restoreState()


def render_plan_pdf(plan, form, generated_at: Optional[datetime] = None) -> bytes:
    """Render plan (answers and validations) as a PDF following form's question order."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=1.5*cm,
        leftMargin=1.5*cm,
        topMargin=1.5*cm,
        bottomMargin=2*cm,
        title=f"Plan de cours {plan.course_code}",
        author=plan.teacher_name or "",
    )
    styles = get_plan_styles()
    story = []
    usable_width = A4[0] - 3*cm

    # ─── Banner ─────────────────────────────────────────────────────────────────
    banner = Table(
        [
            [Paragraph("Plan de Cours", styles['PlanTitle'])],
            [Paragraph(
                _escape_html(f"{plan.course_code} - {plan.course_name or 'Sans titre'}"),
                styles['PlanSubtitle'],
            )],
        ],
        colWidths=[usable_width],
    )
    banner.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), PRIMARY_COLOR),
        ('TOPPADDING', (0, 0), (-1, -1), 8),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
    ]))
    story.append(banner)
    story.append(Spacer(1, 0.6*cm))

    # ─── General information ────────────────────────────────────────────────────
    story.append(Paragraph("Informations générales", styles['SectionHeader']))
    generated = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
    info_rows = [
        ["Enseignant", plan.teacher_name or "N/A"],
        ["Code du cours", plan.course_code or "N/A"],
        ["Nom du cours", plan.course_name or "N/A"],
        ["Session", plan.session or "N/A"],
        ["Date de génération", generated],
    ]
    info = Table(
        [[Paragraph(f"<b>{_escape_html(k)}</b>", styles['Normal']), Paragraph(_escape_html(v), styles['Normal'])]
         for k, v in info_rows],
        colWidths=[4.5*cm, usable_width - 4.5*cm],
    )
    info.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]))
    story.append(info)
    story.append(Spacer(1, 0.5*cm))

    # ─── Questions and answers ──────────────────────────────────────────────────
    story.append(Paragraph("Contenu du plan de cours", styles['SectionHeader']))
    answers = {r.get("question_id"): r.get("answer", "") for r in plan.responses or []}
    validations = {v.get("question_id"): v for v in plan.validations or []}

    for index, question in enumerate(form.questions or [], 1):
        title = Table(
            [[Paragraph(_escape_html(f"{index}. {question.get('title', '')}"), styles['QuestionTitle'])]],
            colWidths=[usable_width],
        )
        title.setStyle(TableStyle([('BACKGROUND', (0, 0), (-1, -1), LIGHT_GRAY)]))
        story.append(title)

        answer = answers.get(question["id"]) or ""
        story.append(Paragraph(_paragraph_text(answer if answer.strip() else "Non répondu"), styles['AnswerText']))

        validation = validations.get(question["id"])
        if validation:
            status = validation.get("status", "")
            style = ParagraphStyle(
                name=f"ValidationStatus{index}",
                parent=styles['ValidationStatus'],
                textColor=STATUS_COLORS.get(status, UNKNOWN_STATUS_COLOR),
            )
            story.append(Paragraph(_escape_html(f"Validation IA: {status}"), style))
        else:
            story.append(Spacer(1, 0.3*cm))

    doc.build(story, canvasmaker=NumberedCanvas)
    return buffer.getvalue()


# ─── Storage ────────────────────────────────────────────────────────────────────

def store_pdf(data: bytes, suggested_name: str) -> str:
    """Write the PDF under EXPORT_DIR and return the URL it is served from."""
    EXPORT_DIR.mkdir(parents=True, exist_ok=True)
    (EXPORT_DIR / suggested_name).write_bytes(data)
    return f"{PUBLIC_BASE_URL}{EXPORT_URL_PREFIX}/{suggested_name}"


def export_plan(plan, form) -> str:
    """Render and store plan; any failure is reported as ExportError."""
    filename = build_pdf_filename(plan.teacher_name, plan.course_code)
    try:
        data = render_plan_pdf(plan, form)
        return store_pdf(data, filename)
    except Exception as exc:
        log.error("PDF export failed for plan %s", getattr(plan, "id", None), exc_info=True)
        raise ExportError(f"Could not export the plan as PDF: {exc}") from exc
