import pytest

from services.pdf_service import PDFService
from services.template_service import normalize_components


@pytest.fixture()
def result(db, seed, make_result):
    return make_result(comments={"teacher": "Steady progress", "principal": "Promoted"},
                       fees={"tuition": 45000, "books": 5000})


def test_result_sheet_html(db, seed, result):
    html = PDFService().render_result_html(result, seed.school, seed.ada, "JSS 1A", normalize_components(None))

    assert "Bright Future Academy" in html
    assert "Ada Obi" in html
    assert "JSS 1A" in html
    assert "Mathematics" in html
    assert "Steady progress" in html
    assert "45,000.00" in html
    assert "50,000.00" in html
    # calculated columns are not repeated as score columns
    assert "<th>Total (100)</th>" not in html


def test_disabled_sections_are_left_out(db, seed, result):
    components = normalize_components({"fees": {"enabled": False}, "comments": {"enabled": True, "principal": False}})
    html = PDFService().render_result_html(result, seed.school, seed.ada, "JSS 1A", components)

    assert "45,000.00" not in html
    assert "Steady progress" in html
    assert "Promoted" not in html


def test_student_fields_are_escaped(db, seed, result):
    seed.ada.name = "<b>Ada</b>"
    html = PDFService().render_result_html(result, seed.school, seed.ada, "JSS 1A", normalize_components(None))
    assert "&lt;b&gt;Ada&lt;/b&gt;" in html


def test_render_returns_pdf_bytes(db, seed, result, monkeypatch):
    service = PDFService()
    monkeypatch.setattr(service, "_html_to_pdf", lambda html: b"%PDF-1.7 " + str(len(html)).encode())

    rendered = service.render(result, seed.school, seed.ada, "JSS 1A", normalize_components(None))

    assert rendered.success is True
    assert rendered.payload.startswith(b"%PDF")
    assert rendered.size == len(rendered.payload)
    assert rendered.base64


def test_render_reports_failure(db, seed, result, monkeypatch):
    def broken(html):
        raise OSError("cannot load library 'pango'")

    service = PDFService()
    monkeypatch.setattr(service, "_html_to_pdf", broken)

    rendered = service.render(result, seed.school, seed.ada, "JSS 1A", normalize_components(None))

    assert rendered.success is False
    assert "pango" in rendered.error
