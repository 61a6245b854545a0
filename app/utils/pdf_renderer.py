"""
Question paper PDF rendering.

Layout: institution name, exam title (in-semester or end-semester), a details
block with subject and maximum marks, numbered instructions, then one section
per marks value (A for the smallest) holding a table of
Sr No. | Questions | CO | RBT | PI | Marks, rows ordered by module.
"""
import logging
import string
from collections import defaultdict
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.core.config import settings
from app.generation.rbt import parse_module

log = logging.getLogger(__name__)

EXAM_TITLES = {
    "ISE": "IN SEMESTER EXAMINATION",
    "ESE": "END SEMESTER EXAMINATION",
}

INSTRUCTIONS = {
    "ISE": [
        "All questions are compulsory.",
        "Assume suitable data wherever necessary and state the assumptions made.",
        "Diagrams / Sketches should be given wherever necessary.",
        "Use of logarithmic table, drawing instruments and non-programmable calculators is permitted.",
        "Figures to the right indicate full marks.",
    ],
    "ESE": [
        "All sections are compulsory.",
        "Figures to the right indicate full marks.",
        "Assume suitable data wherever necessary and state the assumptions clearly.",
    ],
}

TABLE_HEADERS = ["Sr No.", "Questions", "CO", "RBT", "PI", "Marks"]
COLUMN_WIDTHS = [1.4 * cm, 10.6 * cm, 1.3 * cm, 1.3 * cm, 1.4 * cm, 1.4 * cm]

# Untagged questions go to the end of their section
_NO_MODULE = 10 ** 6


def _escape(text: Any) -> str:
    """Paragraph markup is XML-like; keep user text literal."""
    if text is None:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _exam_type_key(exam_type: Any) -> str:
    key = str(getattr(exam_type, "value", exam_type) or "ISE").upper()
    return key if key in EXAM_TITLES else "ISE"


def _section_label(index: int) -> str:
    letters = string.ascii_uppercase
    return letters[index] if index < len(letters) else f"{letters[index // 26 - 1]}{letters[index % 26]}"


def group_into_sections(questions: Sequence[Any]) -> List[Tuple[str, int, List[Any]]]:
    """
    Groups snapshot rows by marks value, ascending, labelled A, B, C...
    Each group is ordered by module number, keeping paper order for ties.
    """
    by_marks: Dict[int, List[Any]] = defaultdict(list)
    for q in sorted(questions, key=lambda q: q.order_index):
        by_marks[int(q.marks or 0)].append(q)

    sections = []
    for index, marks in enumerate(sorted(by_marks)):
        rows = sorted(by_marks[marks], key=lambda q: parse_module(q.co) or _NO_MODULE)
        sections.append((_section_label(index), marks, rows))
    return sections


def get_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="InstitutionName",
        parent=styles["Heading1"],
        fontSize=16,
        alignment=TA_CENTER,
        spaceAfter=6,
        fontName="Helvetica-Bold",
    ))
    styles.add(ParagraphStyle(
        name="ExamTitle",
        parent=styles["Heading2"],
        fontSize=14,
        alignment=TA_CENTER,
        spaceAfter=10,
        fontName="Helvetica-Bold",
    ))
    styles.add(ParagraphStyle(
        name="SectionHeader",
        parent=styles["Heading3"],
        fontSize=12,
        alignment=TA_LEFT,
        spaceBefore=12,
        spaceAfter=6,
        fontName="Helvetica-Bold",
    ))
    styles.add(ParagraphStyle(
        name="Instruction",
        parent=styles["Normal"],
        fontSize=10,
        leftIndent=20,
        spaceAfter=3,
    ))
    styles.add(ParagraphStyle(
        name="Cell",
        parent=styles["Normal"],
        fontSize=9,
        leading=11,
    ))
    return styles


def _details_block(paper: Any, exam_key: str, styles) -> Table:
    subject = _escape(paper.subject) or "_____________"
    max_marks = paper.total_marks if paper.total_marks is not None else "_____"
    if exam_key == "ESE":
        rows = [
            ["YEAR: _______", "", "Q.P. Code:"],
            ["Branch: _______", "Duration:", ""],
            [f"Subject: {subject}", "", f"Max. Marks: {max_marks}"],
        ]
        widths = [8.7 * cm, 4.35 * cm, 4.35 * cm]
        grid = [("BOX", (0, 0), (-1, -1), 0.8, colors.black), ("INNERGRID", (0, 0), (-1, -1), 0.5, colors.black)]
    else:
        rows = [
            ["YEAR: _____________", "Date: _____________"],
            [f"SUBJECT: {subject}", "Timing: _____________"],
            ["Branch: _____________", f"Maximum Marks: {max_marks}"],
            ["Div: _____________", ""],
            ["Duration: _____________", ""],
        ]
        widths = [8.7 * cm, 8.7 * cm]
        grid = []

    table = Table([[Paragraph(f"<b>{cell}</b>", styles["Cell"]) for cell in row] for row in rows], colWidths=widths)
    table.setStyle(TableStyle(grid + [("VALIGN", (0, 0), (-1, -1), "MIDDLE")]))
    return table


def _section_table(rows: Sequence[Any], start: int, styles) -> Table:
    data = [[Paragraph(f"<b>{h}</b>", styles["Cell"]) for h in TABLE_HEADERS]]
    for offset, q in enumerate(rows):
        data.append([
            str(start + offset),
            Paragraph(_escape(q.question_text), styles["Cell"]),
            # Plain cells are drawn verbatim, only Paragraph text is markup
            q.co or "",
            q.rbt or "",
            q.pi or "",
            str(q.marks),
        ])
    table = Table(data, colWidths=COLUMN_WIDTHS, repeatRows=1)
    table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (0, 0), (0, -1), "CENTER"),
        ("ALIGN", (2, 0), (-1, -1), "CENTER"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
    ]))
    return table


def render_paper_pdf(paper: Any, institution_name: Optional[str] = None) -> bytes:
    """Renders a stored paper (with its question snapshots loaded) to PDF bytes."""
    exam_key = _exam_type_key(paper.exam_type)
    styles = get_styles()

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=1.8 * cm,
        leftMargin=1.8 * cm,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
        title=paper.title,
    )

    story = [
        Paragraph(_escape(institution_name or settings.PDF_INSTITUTION_NAME), styles["InstitutionName"]),
        Paragraph(EXAM_TITLES[exam_key], styles["ExamTitle"]),
        _details_block(paper, exam_key, styles),
        Spacer(1, 0.5 * cm),
        Paragraph("<b>Instructions:</b>", styles["Normal"]),
        Spacer(1, 0.15 * cm),
    ]
    for i, instruction in enumerate(INSTRUCTIONS[exam_key], 1):
        story.append(Paragraph(f"{i}. {instruction}", styles["Instruction"]))
    story.append(Spacer(1, 0.4 * cm))

    serial = 1
    for label, marks, rows in group_into_sections(paper.questions):
        story.append(Paragraph(f"Section {label} ({marks} marks each)", styles["SectionHeader"]))
        story.append(_section_table(rows, serial, styles))
        serial += len(rows)

    doc.build(story)
    log.debug("Rendered paper %s to PDF (%d questions)", getattr(paper, "id", None), serial - 1)
    return buffer.getvalue()
