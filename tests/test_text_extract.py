# ---------- TESTS FOR TEXT EXTRACTION ----------

import hashlib
import io

import pytest
from docx import Document

from talentsonar.utils.exceptions import InvalidInputError
from talentsonar.utils.text_extract import extract_text_from_file, normalize_text


def _docx_bytes():
    document = Document()
    document.add_paragraph("Jane Doe")
    document.add_paragraph("Backend Engineer")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Python"
    table.rows[0].cells[1].text = "5 years"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def test_normalize_text():
    assert normalize_text("Jane Doe\r\n\r\n\r\n\r\nEngineer   \n") == "Jane Doe\n\nEngineer"


def test_plain_text_upload():
    data = b"Jane Doe\nPython developer\n"
    extracted = extract_text_from_file(data, "resume.txt", "text/plain")

    assert extracted.text == "Jane Doe\nPython developer"
    assert extracted.sha256 == hashlib.sha256(data).hexdigest()
    assert extracted.bytes == len(data)


def test_unknown_type_decoded_as_utf8():
    extracted = extract_text_from_file("Zoë Müller".encode("utf-8"), "resume.md")
    assert extracted.text == "Zoë Müller"


def test_html_upload_drops_scripts_and_styles():
    data = (
        b"<html><head><style>p { color: red; }</style><script>alert(1)</script></head>"
        b"<body><h1>Jane Doe</h1><p>Python developer</p></body></html>"
    )
    text = extract_text_from_file(data, "resume.html").text

    assert "Jane Doe" in text
    assert "Python developer" in text
    assert "alert" not in text
    assert "color" not in text


def test_docx_upload_includes_tables():
    text = extract_text_from_file(_docx_bytes(), "resume.docx").text

    assert "Jane Doe\nBackend Engineer" in text
    assert "Python | 5 years" in text


def test_empty_upload_rejected():
    with pytest.raises(InvalidInputError) as exc_info:
        extract_text_from_file(b"", "resume.pdf")
    assert exc_info.value.message == "Uploaded file is empty."


def test_corrupt_pdf_rejected():
    with pytest.raises(InvalidInputError) as exc_info:
        extract_text_from_file(b"definitely not a pdf", "resume.pdf", "application/pdf")
    assert exc_info.value.code == "VALIDATION"
    assert "resume.pdf" in exc_info.value.message


def test_mime_type_parameters_are_ignored():
    data = b"<html><body><h1>Jane Doe</h1><p>Python developer</p></body></html>"
    text = extract_text_from_file(data, "upload", "text/html; charset=utf-8").text

    assert "Jane Doe" in text
    assert "<h1>" not in text
