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


@pytest.fixture()
def detection_result() -> dict[str, object]:
    """Textract-shaped result covering two pages."""
    return {
        "DocumentMetadata": {"Pages": 2},
        "Blocks": [
            {"BlockType": "PAGE", "Id": "p1", "Page": 1},
            {"BlockType": "LINE", "Id": "l1", "Page": 1, "Text": "Invoice 42", "Confidence": 99.5},
            {"BlockType": "WORD", "Id": "w1", "Page": 1, "Text": "Invoice", "Confidence": 99.9},
            {"BlockType": "LINE", "Id": "l2", "Page": 1, "Text": "Total: 10 EUR", "Confidence": 97.25},
            {"BlockType": "PAGE", "Id": "p2", "Page": 2},
            {"BlockType": "LINE", "Id": "l3", "Page": 2, "Text": "Thank you", "Confidence": 90.0},
        ],
        "Warnings": [],
    }
