"""Render a chat session to a paginated PDF."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from typing import List, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .models import USER, Session

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 20 * mm
MAX_WIDTH = PAGE_WIDTH - 2 * MARGIN
LINE_HEIGHT = 5 * mm
BOTTOM_GUARD = 40 * mm

TITLE = "Weather Chat Export"

# (font name, font size, distance from top of page, text)
_Op = Tuple[str, float, float, str]


def format_time(dt: datetime) -> str:
    """12-hour clock in local time, e.g. ``3:07 PM``."""
    return dt.astimezone().strftime("%I:%M %p").lstrip("0")


def export_filename(session: Session) -> str:
    return f"weather-chat-{session.created_at.date().isoformat()}.pdf"


@dataclass
class _Layout:
    pages: List[List[_Op]] = field(default_factory=lambda: [[]])
    y: float = MARGIN

    def new_page(self) -> None:
        self.pages.append([])
        self.y = MARGIN

    def text(self, font: str, size: float, value: str, advance: float) -> None:
        self.pages[-1].append((font, size, self.y, value))
        self.y += advance


def _layout(session: Session) -> _Layout:
    lay = _Layout()
    lay.text("Helvetica-Bold", 20, TITLE, 15 * mm)

    created = session.created_at.astimezone()
    lay.text("Helvetica", 12, f"Session: {session.title}", 8 * mm)
    lay.text("Helvetica", 12, f"Date: {created:%Y-%m-%d} {format_time(created)}", 8 * mm)
    lay.text("Helvetica", 12, f"Messages: {len(session.messages)}", 20 * mm)

    for message in session.messages:
        if lay.y > PAGE_HEIGHT - BOTTOM_GUARD:
            lay.new_page()

        role = "You" if message.role == USER else "Weather Assistant"
        lay.text("Helvetica-Bold", 11, f"{role} - {format_time(message.timestamp)}", 8 * mm)

        lines = simpleSplit(message.content, "Helvetica", 10, MAX_WIDTH) or [""]
        if lay.y + len(lines) * LINE_HEIGHT > PAGE_HEIGHT - MARGIN:
            lay.new_page()
        for line in lines:
            # Blocks taller than a full page still have to break somewhere.
            if lay.y > PAGE_HEIGHT - MARGIN:
                lay.new_page()
            lay.text("Helvetica", 10, line, LINE_HEIGHT)

        lay.y += 10 * mm
    return lay


def export_session_pdf(session: Session) -> bytes:
    """Return the PDF bytes for ``session``.

    Raises ``ValueError`` for a session without messages; there is nothing to
    export.
    """
    if not session.messages:
        raise ValueError("Cannot export a session with no messages.")

    lay = _layout(session)
    total = len(lay.pages)
    buf = BytesIO()
    pdf = canvas.Canvas(buf, pagesize=A4)
    pdf.setTitle(f"{TITLE}: {session.title}")

    for number, ops in enumerate(lay.pages, start=1):
        for font, size, y, value in ops:
            pdf.setFont(font, size)
            pdf.drawString(MARGIN, PAGE_HEIGHT - y, value)
        pdf.setFont("Helvetica-Oblique", 8)
        pdf.drawString(MARGIN, 10 * mm, f"Page {number} of {total}")
        pdf.showPage()

    pdf.save()
    return buf.getvalue()
