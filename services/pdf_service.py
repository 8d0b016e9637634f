from jinja2 import Environment, FileSystemLoader, select_autoescape
from pathlib import Path
from typing import Dict, Any, Optional

from config.settings import settings
from utils.errors import ConflictError

PROJECT_ROOT = Path(__file__).resolve().parent.parent

class CertificatePDFService:
    def __init__(self, template_dir: Optional[str] = None):
        # template environment
        self.template_dir = Path(template_dir or settings.TEMPLATE_DIR)
        if not self.template_dir.is_absolute():
            self.template_dir = PROJECT_ROOT / self.template_dir
        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=select_autoescape(["html"]),
        )

    def _render_template(self, template_name: str, data: Dict[str, Any]) -> str:
        """Render a template to HTML"""
        template = self.env.get_template(template_name)
        return template.render(**data)

    def _html_to_pdf(self, html_content: str) -> bytes:
        """Convert HTML to PDF"""
        # WeasyPrint loads native libraries on import
        import weasyprint
        return weasyprint.HTML(string=html_content, base_url=str(self.template_dir)).write_pdf()

    def render_html(self, view: Dict[str, Any]) -> str:
        """Final report + certificate print view (HTML)"""
        if not view.get("certificate"):
            raise ConflictError(
                f"Final report {view.get('id')} has not been issued yet",
                details={"final_report_id": view.get("id")},
            )
        return self._render_template("final_report_certificate.html", {"report": view})

    def generate_certificate_pdf(self, view: Dict[str, Any]) -> bytes:
        """Final report + certificate PDF"""
        return self._html_to_pdf(self.render_html(view))
