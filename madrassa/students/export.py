"""
Roster export to CSV, Excel and PDF.

CSV and Excel use the Dutch headers of the students screen; every header
except 'Klas' resolves through the import alias table, so an exported file
can be edited and imported again.
"""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

EXPORT_HEADERS: dict[str, str] = {
    "studentId": "Student ID",
    "firstName": "Voornaam",
    "lastName": "Achternaam",
    "email": "Email",
    "phone": "Telefoonnummer",
    "className": "Klas",
    "status": "Status",
}


def _export_frame(df: pd.DataFrame) -> pd.DataFrame:
    out = df.reindex(columns=list(EXPORT_HEADERS)).fillna("")
    return out.rename(columns=EXPORT_HEADERS)


def export_filename(extension: str, when: datetime | None = None) -> str:
    stamp = (when or datetime.now()).strftime("%Y-%m-%d")
    return f"studenten_export_{stamp}.{extension}"


def export_csv(df: pd.DataFrame) -> bytes:
    # BOM so that Excel opens accented names correctly
    return _export_frame(df).to_csv(index=False).encode("utf-8-sig")


def export_excel(df: pd.DataFrame) -> bytes:
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _export_frame(df).to_excel(writer, index=False, sheet_name="Studenten")
    return buffer.getvalue()


def export_pdf(df: pd.DataFrame, title: str = "Studenten Lijst", subtitle: str = "") -> BytesIO:
    """Roster table as a landscape A4 PDF"""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        topMargin=0.6 * inch,
        bottomMargin=0.6 * inch,
    )
    story = []

    # Styles
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'RosterTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=colors.HexColor('#1e3a8a'),
        spaceAfter=6,
        alignment=TA_CENTER
    )
    subtitle_style = ParagraphStyle(
        'RosterSubtitle',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#6b7280'),
        spaceAfter=16,
        alignment=TA_CENTER
    )
    cell_style = ParagraphStyle(
        'RosterCell',
        parent=styles['Normal'],
        fontSize=8,
        leading=10,
        textColor=colors.HexColor('#1f2937'),
    )

    story.append(Paragraph(title, title_style))
    generated = datetime.now().strftime('%Y-%m-%d %H:%M')
    story.append(Paragraph(subtitle or f"{len(df)} studenten | {generated}", subtitle_style))
    story.append(Spacer(1, 0.1 * inch))

    frame = _export_frame(df)
    data = [list(frame.columns)]
    for _, row in frame.iterrows():
        data.append([Paragraph(escape(str(value)), cell_style) for value in row])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1e40af')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 9),
        ('GRID', (0, 0), (-1, -1), 0.25, colors.HexColor('#e5e7eb')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f9fafb')]),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    story.append(table)

    doc.build(story)
    buffer.seek(0)
    return buffer
