from io import BytesIO
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet
from django.http import HttpResponse
from django.utils import timezone

from .listing import AGGREGATED
from .offices import CASE, COUNSELING, MEDICAL

HEADER_BLUE = HexColor("#1F618D")
GRID_GREY = HexColor("#B3B6B7")
ROW_COLORS = [HexColor("#F8F9F9"), HexColor("#EBF5FB")]

STUDENT_COLUMNS = [
    ("Student ID", "student_id"),
    ("Name", "student_name"),
    ("Grade", "grade_level"),
]

EXPORT_COLUMNS = {
    CASE: [("Case No", "case_no")] + STUDENT_COLUMNS + [
        ("Violation", "violation_level"),
        ("Status", "status"),
        ("Date", "date"),
        ("Referred", "referred"),
    ],
    COUNSELING: [("Session", "session_number")] + STUDENT_COLUMNS + [
        ("Status", "status"),
        ("Date", "date"),
        ("Time", "time"),
    ],
    MEDICAL: [("Record", "record_id")] + STUDENT_COLUMNS + [
        ("Subject", "subject"),
        ("Status", "status"),
        ("Medical", "is_medical"),
        ("Psychological", "is_psychological"),
        ("Date", "date"),
    ],
}

AGGREGATED_EXPORT_COLUMNS = STUDENT_COLUMNS + [
    ("Strand", "strand"),
    ("Records", "record_count"),
    ("Latest Status", "latest_status"),
    ("Latest Date", "latest_date"),
]


def export_columns(record_type, mode):
    if mode == AGGREGATED:
        return AGGREGATED_EXPORT_COLUMNS
    return EXPORT_COLUMNS[record_type]


def _cell(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    text = str(value)
    # trim ISO timestamps down to the date
    if len(text) > 10 and text[4:5] == "-" and text[10:11] == "T":
        return text[:10]
    return text


def generate_listing_pdf(rows, record_type, mode, office, query=None):
    """Render the rows of one listing projection, in the order given, as a PDF download."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), rightMargin=20, leftMargin=20, topMargin=20, bottomMargin=20)
    elements = []
    styles = getSampleStyleSheet()
    table_width = landscape(A4)[0] - doc.leftMargin - doc.rightMargin
    generated = timezone.localtime().strftime("%Y-%m-%d %H:%M")

    # Header info
    header_data = [
        ["Office:", office, "Records:", record_type],
        ["Search:", query or "N/A", "Generated:", generated],
    ]
    col_widths_header = [table_width * 0.15, table_width * 0.35, table_width * 0.15, table_width * 0.35]
    header_table = Table(header_data, colWidths=col_widths_header, hAlign='LEFT')
    header_table.setStyle(TableStyle([
        ('BACKGROUND', (0,0), (0,-1), HEADER_BLUE),
        ('BACKGROUND', (2,0), (2,-1), HEADER_BLUE),
        ('TEXTCOLOR', (0,0), (0,-1), colors.white),
        ('TEXTCOLOR', (2,0), (2,-1), colors.white),
        ('BACKGROUND', (1,0), (1,-1), colors.white),
        ('BACKGROUND', (3,0), (3,-1), colors.white),
        ('FONTNAME', (0,0), (-1,-1), 'Helvetica'),
        ('FONTSIZE', (0,0), (-1,-1), 10),
        ('GRID', (0,0), (-1,-1), 0.3, GRID_GREY),
        ('VALIGN', (0,0), (-1,-1), 'MIDDLE'),
        ('ALIGN', (0,0), (-1,-1), 'CENTER'),
        ('TOPPADDING', (0,0), (-1,-1), 6),
        ('BOTTOMPADDING', (0,0), (-1,-1), 6),
    ]))
    elements.append(header_table)
    elements.append(Spacer(1, 15))

    title = f"{record_type} Records by Student" if mode == AGGREGATED else f"{record_type} Records"
    elements.append(Paragraph(title, styles['Heading2']))

    columns = export_columns(record_type, mode)
    table_data = [[label for label, _ in columns]]
    for row in rows:
        table_data.append([_cell(row.get(key)) for _, key in columns])
    if len(table_data) == 1:
        table_data.append(["No records"] + [""] * (len(columns) - 1))

    col_widths = [table_width / len(columns)] * len(columns)
    t_rows = Table(table_data, colWidths=col_widths, hAlign='CENTER', repeatRows=1)
    t_rows.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_BLUE),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('GRID', (0, 0), (-1, -1), 0.3, GRID_GREY),
        ('ROWBACKGROUNDS', (0,1), (-1,-1), ROW_COLORS),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('TOPPADDING', (0,0), (-1,-1), 6),
        ('BOTTOMPADDING', (0,0), (-1,-1), 6),
    ]))
    elements.append(t_rows)

    doc.build(elements)
    buffer.seek(0)

    filename = f"{office}_{record_type}_{mode}_records_{timezone.localdate().isoformat()}.pdf".replace(" ", "_").lower()
    response = HttpResponse(buffer, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
