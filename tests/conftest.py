import io

import pytest
from docx import Document

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"

# A SAFE-style template: body placeholders, two currency blanks and a
# two-party signature block with label lines
SAFE_PARAGRAPHS = [
    "SIMPLE AGREEMENT FOR FUTURE EQUITY",
    'THIS CERTIFIES THAT in exchange for the payment by [Investor Name] (the "Investor") of '
    '$[_____________] (the "Purchase Amount") on or about [Date of Safe], [Company Name], '
    'a [State of Incorporation] corporation (the "Company"), issues to the Investor the right '
    'to certain shares of the Company subject to the terms described below.',
    'The "Post-Money Valuation Cap" is $[_____________].',
    "This Safe shall be governed by the laws of the State of [Governing Law Jurisdiction].",
    "IN WITNESS WHEREOF, the undersigned have caused this Safe to be duly executed and delivered.",
    "COMPANY:",
    "[COMPANY]",
    "By:",
    "Name: [name]",
    "Title: [title]",
    "Address:",
    "Email:",
    "INVESTOR:",
    "By:",
    "Name: [name]",
    "Title: [title]",
    "Address:",
    "Email:",
]

SAFE_ANSWERS = {
    "Company Name": "Acme Robotics, Inc.",
    "Investor Name": "Jane Doe",
    "Purchase Amount": "100k",
    "Post-Money Valuation Cap": "5 million",
    "Date of Safe": "March 3, 2025",
    "State of Incorporation": "Delaware",
    "Governing Law Jurisdiction": "California",
    "Company Name Field": "John Smith",
    "Company Title": "CEO",
    "Company Address": "1 Main St, Springfield",
    "Company Email": "john@acme.test",
    "Investor Title": "Partner",
    "Investor Address": "9 Elm Rd, Shelbyville",
    "Investor Email": "jane@doe.test",
}


def build_docx(paragraphs, header=None, footer=None):
    """
    DOCX bytes with one paragraph per entry. A string entry is one run; a
    list entry is added run by run, so "[Com" + "pany Name]" is a split token.
    """
    doc = Document()
    for paragraph in paragraphs:
        if isinstance(paragraph, str):
            doc.add_paragraph(paragraph)
        else:
            p = doc.add_paragraph()
            for run in paragraph:
                p.add_run(run)
    if header is not None:
        doc.sections[0].header.add_paragraph(header)
    if footer is not None:
        doc.sections[0].footer.add_paragraph(footer)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def docx_paragraphs(docx_bytes):
    return [p.text for p in Document(io.BytesIO(docx_bytes)).paragraphs]


def body_markup(paragraphs):
    """Minimal word/document.xml around hand-written paragraph markup."""
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{W_NS}"><w:body>'
        + "".join(paragraphs)
        + '<w:sectPr><w:pgSz w:w="12240" w:h="15840"/></w:sectPr>'
        '</w:body></w:document>'
    )


@pytest.fixture
def make_docx():
    return build_docx


@pytest.fixture
def read_paragraphs():
    return docx_paragraphs


@pytest.fixture
def make_markup():
    return body_markup


@pytest.fixture
def safe_docx():
    return build_docx(SAFE_PARAGRAPHS)


@pytest.fixture
def safe_text():
    return "\n".join(SAFE_PARAGRAPHS) + "\n"


@pytest.fixture
def safe_answers():
    return dict(SAFE_ANSWERS)
