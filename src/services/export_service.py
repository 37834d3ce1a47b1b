import csv
import io
import logging
from pathlib import Path
from typing import List, Sequence

import fitz  # PyMuPDF

from src.core.models import TranscriptEntry

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("txt", "csv", "pdf")

# PDF layout (points, US Letter)
PAGE_WIDTH = 612
PAGE_HEIGHT = 792
MARGIN = 24
CONTENT_WIDTH = PAGE_WIDTH - MARGIN * 2
BUBBLE_MAX_WIDTH = CONTENT_WIDTH * 0.72
BUBBLE_PADDING_X = 10
BUBBLE_PADDING_Y = 6
BUBBLE_RADIUS = 18
VERTICAL_SPACING = 8
LINE_SPACING = 1.25

FONT = "helv"
MESSAGE_FONT_SIZE = 13
TIME_FONT_SIZE = 11
DATE_FONT_SIZE = 11

OUTGOING_COLOR = (0.0, 0.478, 1.0)
INCOMING_COLOR = (0.85, 0.85, 0.85)
DATE_PILL_COLOR = (0.9, 0.9, 0.9)
DARK_TEXT = (0.0, 0.0, 0.0)
LIGHT_TEXT = (1.0, 1.0, 1.0)
DATE_TEXT = (0.33, 0.33, 0.33)


def make_plain_text(entries: Sequence[TranscriptEntry]) -> str:
    """One numbered line per entry: '1. Fri, 28 Nov'."""
    return "\n".join(f"{i + 1}. {entry.text}" for i, entry in enumerate(entries))


def make_csv(entries: Sequence[TranscriptEntry]) -> str:
    """
    Columns index,page,text. Text is always quoted and embedded quotes are
    doubled, so multi-line bubbles stay in one cell.
    """
    buffer = io.StringIO()
    buffer.write("index,page,text")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="")
    for i, entry in enumerate(entries):
        buffer.write("\n")
        buffer.write(f"{i + 1},{entry.page_index},")
        writer.writerow([entry.text])
    return buffer.getvalue()


def _text_width(text: str, fontsize: float) -> float:
    return fitz.get_text_length(text, fontname=FONT, fontsize=fontsize)


def wrap_text(text: str, max_width: float, fontsize: float) -> List[str]:
    """
    Greedy word wrap. Explicit newlines are kept; words wider than a line
    are broken by character.
    """
    lines: List[str] = []
    for paragraph in text.split("\n"):
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if _text_width(candidate, fontsize) <= max_width:
                current = candidate
                continue

            if current:
                lines.append(current)
                current = ""

            # Word alone does not fit: hard break it
            for char in word:
                if current and _text_width(current + char, fontsize) > max_width:
                    lines.append(current)
                    current = ""
                current += char
        lines.append(current)
    return lines


class _PdfWriter:
    """Keeps the current page and cursor while laying out entries top-down."""

    def __init__(self, doc: fitz.Document):
        self.doc = doc
        self.page = None
        self.cursor_y = 0.0
        self.new_page()

    def new_page(self) -> None:
        self.page = self.doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        self.cursor_y = MARGIN

    def ensure_space(self, height: float) -> None:
        # A block taller than a whole page still starts on a fresh one and overflows
        if self.cursor_y + height > PAGE_HEIGHT - MARGIN and self.cursor_y > MARGIN:
            self.new_page()

    def draw_lines(self, lines: List[str], x: float, top: float, fontsize: float, color) -> None:
        line_height = fontsize * LINE_SPACING
        for i, line in enumerate(lines):
            baseline = top + fontsize + i * line_height
            self.page.insert_text(
                (x, baseline), line, fontsize=fontsize, fontname=FONT, color=color
            )

    def date_pill(self, text: str) -> None:
        lines = wrap_text(text, CONTENT_WIDTH - 16, DATE_FONT_SIZE)
        text_width = max(_text_width(line, DATE_FONT_SIZE) for line in lines)
        width = text_width + 16
        height = len(lines) * DATE_FONT_SIZE * LINE_SPACING + 4

        self.ensure_space(height + VERTICAL_SPACING * 2)

        left = (PAGE_WIDTH - width) / 2
        rect = fitz.Rect(left, self.cursor_y, left + width, self.cursor_y + height)
        self.page.draw_rect(rect, color=None, fill=DATE_PILL_COLOR, radius=0.5)
        self.draw_lines(lines, left + 8, self.cursor_y + 2, DATE_FONT_SIZE, DATE_TEXT)

        self.cursor_y += height + VERTICAL_SPACING

    def bubble(self, entry: TranscriptEntry) -> None:
        is_outgoing = bool(entry.is_outgoing)
        fill = OUTGOING_COLOR if is_outgoing else INCOMING_COLOR
        text_color = LIGHT_TEXT if is_outgoing else DARK_TEXT

        text_max_width = BUBBLE_MAX_WIDTH - BUBBLE_PADDING_X * 2
        lines = wrap_text(entry.text, text_max_width, MESSAGE_FONT_SIZE)
        text_width = max(_text_width(line, MESSAGE_FONT_SIZE) for line in lines)
        text_height = len(lines) * MESSAGE_FONT_SIZE * LINE_SPACING

        time_width = 0.0
        time_height = 0.0
        if entry.time_text:
            time_width = _text_width(entry.time_text, TIME_FONT_SIZE)
            time_height = TIME_FONT_SIZE * LINE_SPACING

        # Wide enough to host the time at the bottom-right
        width = max(text_width, time_width) + BUBBLE_PADDING_X * 2
        width = min(width, BUBBLE_MAX_WIDTH)
        height = text_height + (time_height + 2 if time_height else 0) + BUBBLE_PADDING_Y * 2

        self.ensure_space(height + VERTICAL_SPACING)

        left = PAGE_WIDTH - MARGIN - width if is_outgoing else MARGIN
        rect = fitz.Rect(left, self.cursor_y, left + width, self.cursor_y + height)
        radius = min(0.5, BUBBLE_RADIUS / min(rect.width, rect.height))
        self.page.draw_rect(rect, color=None, fill=fill, radius=radius)

        text_top = self.cursor_y + BUBBLE_PADDING_Y
        self.draw_lines(lines, left + BUBBLE_PADDING_X, text_top, MESSAGE_FONT_SIZE, text_color)

        if entry.time_text:
            time_x = rect.x1 - BUBBLE_PADDING_X - time_width
            self.draw_lines(
                [entry.time_text], time_x, text_top + text_height + 2, TIME_FONT_SIZE, text_color
            )

        self.cursor_y += height + VERTICAL_SPACING


def render_pdf(entries: Sequence[TranscriptEntry]) -> fitz.Document:
    """
    Lays the transcript out as chat bubbles: outgoing right/blue, incoming
    left/grey, date headers as centered pills. Pages break as needed.
    """
    doc = fitz.open()
    doc.set_metadata({"title": "Chat Export", "creator": "chat-screenshot-export"})

    writer = _PdfWriter(doc)
    for entry in entries:
        if entry.is_message:
            writer.bubble(entry)
        else:
            writer.date_pill(entry.text)
    return doc


def make_pdf_bytes(entries: Sequence[TranscriptEntry]) -> bytes:
    doc = render_pdf(entries)
    try:
        return doc.tobytes()
    finally:
        doc.close()


def make_pdf(entries: Sequence[TranscriptEntry], output_path: str) -> Path:
    """Renders the transcript to a PDF file and returns its path."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    doc = render_pdf(entries)
    try:
        page_count = doc.page_count
        doc.save(str(path))
    finally:
        doc.close()

    logger.info(f"📄 Exported {len(entries)} entries to {path} ({page_count} pages)")
    return path


def write_export(entries: Sequence[TranscriptEntry], output_path: str, fmt: str) -> Path:
    """Writes the transcript in the given format ('txt', 'csv' or 'pdf')."""
    if fmt == "pdf":
        return make_pdf(entries, output_path)
    if fmt == "txt":
        content = make_plain_text(entries)
    elif fmt == "csv":
        content = make_csv(entries)
    else:
        raise ValueError(f"Unsupported export format: {fmt!r} (expected one of {EXPORT_FORMATS})")

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info(f"💾 Exported {len(entries)} entries to {path}")
    return path
