from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import List

from docx import Document
from docx.shared import Pt
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@dataclass
class GeneratedFile:
    filename: str
    content_type: str
    data: bytes


class DocumentService:
    """
    Generates downloadable documents (TXT/PDF/DOCX) for the adapted CV and
    the cover letter.
    """

    PAGE_SIZE = A4
    MARGIN = 15 * mm
    LINE_PITCH = 7 * mm
    FONT_NAME = "Helvetica"
    FONT_SIZE = 12

    def text(self, content: str, filename: str) -> GeneratedFile:
        return GeneratedFile(
            filename=filename,
            content_type="text/plain; charset=utf-8",
            data=content.encode("utf-8"),
        )

    def docx(self, content: str, filename: str) -> GeneratedFile:
        doc = Document()
        style = doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(11)

        for para in content.strip().split("\n"):
            doc.add_paragraph(para)

        buf = BytesIO()
        doc.save(buf)
        return GeneratedFile(filename=filename, content_type=DOCX_CONTENT_TYPE, data=buf.getvalue())

    def pdf(self, content: str, filename: str) -> GeneratedFile:
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=self.PAGE_SIZE)
        _, height = self.PAGE_SIZE

        y = height - self.MARGIN
        c.setFont(self.FONT_NAME, self.FONT_SIZE)
        per_page = self.lines_per_page()

        for i, line in enumerate(self.wrap_lines(content)):
            if i and i % per_page == 0:
                c.showPage()
                c.setFont(self.FONT_NAME, self.FONT_SIZE)
                y = height - self.MARGIN
            c.drawString(self.MARGIN, y, line)
            y -= self.LINE_PITCH

        c.showPage()
        c.save()

        return GeneratedFile(filename=filename, content_type="application/pdf", data=buf.getvalue())

    # -----------------------
    # helpers
    # -----------------------
    def wrap_lines(self, content: str) -> List[str]:
        """Split text into lines that fit the printable width; blank lines are kept."""
        width, _ = self.PAGE_SIZE
        max_width = width - 2 * self.MARGIN

        out: List[str] = []
        for line in content.replace("\r\n", "\n").split("\n"):
            if not line.strip():
                out.append("")
                continue
            out.extend(simpleSplit(line, self.FONT_NAME, self.FONT_SIZE, max_width))
        return out

    def lines_per_page(self) -> int:
        _, height = self.PAGE_SIZE
        usable = height - 2 * self.MARGIN
        return int(usable // self.LINE_PITCH)
