import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config.settings import settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


@dataclass
class RenderedPdf:
    success: bool
    payload: bytes = b""
    size: int = 0
    error: Optional[str] = None

    @property
    def base64(self) -> str:
        return base64.b64encode(self.payload).decode("ascii")


class PDFService:
    def __init__(self):
        # template environment
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def _render_template(self, template_name: str, data: Dict[str, Any]) -> str:
        """Render an HTML template"""
        template = self.env.get_template(template_name)
        return template.render(**data)

    def _html_to_pdf(self, html_content: str) -> bytes:
        """HTML → PDF"""
        import weasyprint  # needs pango at runtime, so only loaded when a sheet is actually printed

        return weasyprint.HTML(string=html_content, base_url=settings.WEASYPRINT_FONT_DIR).write_pdf()

    def sheet_context(self, result, school, student, class_name: str, components: Dict[str, Any]) -> Dict[str, Any]:
        """Collect what the result sheet shows; disabled template sections are left out."""
        def enabled(section: str) -> bool:
            return bool(components.get(section, {}).get("enabled", False))

        traits = [
            {"name": t["name"], "rating": (result.affective_traits or {}).get(t["key"])}
            for t in components.get("affectiveTraits", {}).get("traits", []) if t.get("enabled", True)
        ]
        fees = [
            {"name": f["name"], "amount": (result.fees or {}).get(f["key"], 0)}
            for f in components.get("fees", {}).get("types", []) if f.get("enabled", True)
        ]
        comments = components.get("comments", {})
        return {
            "school": school,
            "student": student,
            "class_name": class_name,
            "result": result,
            "columns": [c for c in result.score_columns or [] if not c.get("calculated")],
            "subjects": result.subjects or [],
            "traits": traits,
            "fees": fees,
            "fees_total": sum(f["amount"] or 0 for f in fees),
            "show": {
                name: enabled(name)
                for name in ("header", "studentInfo", "scoresTable", "affectiveTraits",
                             "fees", "attendance", "comments", "signatures")
            },
            "show_teacher_comment": comments.get("teacher", True),
            "show_principal_comment": comments.get("principal", True),
        }

    def render_result_html(self, result, school, student, class_name: str, components: Dict[str, Any]) -> str:
        return self._render_template(
            "result_sheet.html", self.sheet_context(result, school, student, class_name, components)
        )

    def render(self, result, school, student, class_name: str, components: Dict[str, Any]) -> RenderedPdf:
        """Result sheet PDF; rendering problems are reported in the returned value."""
        try:
            html = self.render_result_html(result, school, student, class_name, components)
            payload = self._html_to_pdf(html)
        except Exception as e:
            logger.error("PDF generation failed for result %s: %s", result.id, e)
            return RenderedPdf(success=False, error=str(e))
        return RenderedPdf(success=True, payload=payload, size=len(payload))


pdf_service = PDFService()


def get_pdf_service() -> PDFService:
    return pdf_service
