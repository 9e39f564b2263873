import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

CREDIT_REPORT_LINES = [
    "EXPERIAN CREDIT REPORT",
    "PERSONAL INFORMATION",
    "Name: John Michael Smith",
    "Date of Birth: 03/15/1985",
    "SSN: XXX-XX-1234",
    "Current Address: 123 Main Street, Anytown, CA 90210",
    "CREDIT ACCOUNTS",
    "Chase Bank Account ****1234 Balance $1,250.00 Status Open",
    "Credit Limit: $5,000.00",
    "Capital One Platinum Credit Card",
    "Account Number: ****5678",
    "Current Balance: $890.50",
    "Payment Status: Past Due",
    "CREDIT INQUIRIES",
    "Verizon Wireless 11/15/2023",
    "Discover 08/02/2023 Soft Inquiry",
    "COLLECTIONS",
    "Medical Collection Services $350.00 reported 06/01/2022",
]


def _pdf(lines_per_page: list[list[str]]) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for lines in lines_per_page:
        y = 740
        for line in lines:
            c.drawString(72, y, line)
            y -= 16
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    return _pdf([["Hello PDF World"]])


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    return _pdf([["Page one content"], ["Page two content"]])


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    return _pdf([[]])


@pytest.fixture()
def credit_report_text() -> str:
    return "\n".join(CREDIT_REPORT_LINES)


@pytest.fixture()
def credit_report_pdf_bytes() -> bytes:
    """Generate a one-page credit report PDF with a native text layer."""
    return _pdf([CREDIT_REPORT_LINES])
