import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


LAB_REPORT_LINES = [
    "Riverside Laboratory Report",
    "Collection Date: 2024-03-15",
    "Glucose: 95 mg/dL (70-99 mg/dL)",
    "Total Cholesterol: 210 mg/dL H",
    "HDL Cholesterol: 55 mg/dL",
    "LDL Cholesterol: 130 mg/dL",
    "Triglycerides: 150 mg/dL",
    "TSH: 2.1 mIU/L",
    "Hemoglobin: 14.2 g/dL",
    "Ferritin: 85 ng/mL",
    "Page 1 of 1",
]


@pytest.fixture()
def lab_report_text() -> str:
    """Plain-text lab report with eight recognizable biomarkers."""
    return "\n".join(LAB_REPORT_LINES)


@pytest.fixture()
def lab_report_pdf_bytes() -> bytes:
    """Generate a single-page PDF holding the lab report lines."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    y = 720
    for line in LAB_REPORT_LINES:
        c.drawString(72, y, line)
        y -= 18
    c.save()
    return buf.getvalue()
