"""
Mood journal report: a paginated PDF built from a slice of entries.

Layout happens in `ReportDocument`, a page-building accumulator that tracks a
vertical cursor in millimetres on A4 and starts a new page whenever the next
block does not fit. Rendering turns the laid-out pages into HTML with Jinja2
and then into a PDF with WeasyPrint.
"""
import calendar
import logging
import textwrap
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from jinja2 import BaseLoader, Environment, select_autoescape

from backend.moodflow.errors import ReportGenerationFailed
from backend.moodflow.models._time import utcnow
from backend.moodflow.services import aggregation

logger = logging.getLogger(__name__)

PAGE_WIDTH = 210.0
PAGE_HEIGHT = 297.0
MARGIN = 20.0
PT_TO_MM = 0.3528
# Average Helvetica glyph width relative to the font size
AVG_CHAR_WIDTH = 0.5

REPORT_TITLE = 'Mood Journal Report'
FOOTER_TEXT = 'Generated by MoodFlow AI - Confidential Report'
MAX_ENTRIES = 20
TOP_EMOTIONS = 10
DEFAULT_MONTHS = 3

REPORT_TEMPLATE = r"""
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ title }}</title>
  <style>
    @page { size: A4; margin: 0; }
    html, body { margin: 0; padding: 0; font-family: Helvetica, Arial, sans-serif; color: #111; }
    section.page { position: relative; width: {{ width }}mm; height: {{ height }}mm; page-break-after: always; overflow: hidden; }
    section.page:last-child { page-break-after: auto; }
    .block { position: absolute; left: {{ margin }}mm; white-space: pre; line-height: 1; }
    .bold { font-weight: 700; }
    .italic { font-style: italic; }
  </style>
</head>
<body>
{% for page in pages %}
  <section class="page">
  {% for block in page %}
    <div class="block {{ block.style }}" style="top: {{ '%.2f' % block.top }}mm; font-size: {{ block.font_size }}pt;">{{ block.text }}</div>
  {% endfor %}
  </section>
{% endfor %}
</body>
</html>
"""


class ReportDocument:
    """Stateful page builder with automatic pagination."""

    def __init__(self, title: str = REPORT_TITLE, page_width: float = PAGE_WIDTH,
                 page_height: float = PAGE_HEIGHT, margin: float = MARGIN):
        self.title = title
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin
        self.pages: List[List[Dict[str, Any]]] = [[]]
        self.current_y = margin

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def text_width(self) -> float:
        return self.page_width - 2 * self.margin

    def texts(self) -> List[str]:
        """All text in reading order."""
        return [block["text"] for page in self.pages for block in page]

    def new_page(self) -> None:
        self.pages.append([])
        self.current_y = self.margin

    def ensure_space(self, height: float) -> None:
        """Start a new page unless `height` fits above the bottom margin."""
        if self.current_y + height > self.page_height - self.margin:
            self.new_page()

    def _place(self, text: str, font_size: float, style: str, y: Optional[float] = None) -> None:
        top = self.current_y if y is None else y
        # Text is drawn on its baseline, the HTML block is positioned by its top edge
        self.pages[-1].append({
            "text": text,
            "font_size": font_size,
            "style": style,
            "top": max(top - font_size * PT_TO_MM, 0),
        })

    def wrap(self, text: str, font_size: float) -> List[str]:
        chars_per_line = max(int(self.text_width / (font_size * AVG_CHAR_WIDTH * PT_TO_MM)), 1)
        lines = []
        for paragraph in (text or '').splitlines() or ['']:
            lines.extend(textwrap.wrap(paragraph, chars_per_line) or [''])
        return lines

    def add_title(self, text: str, font_size: float = 20) -> None:
        self._place(text, font_size, 'bold')
        self.current_y += font_size * 0.6

    def add_subtitle(self, text: str, font_size: float = 14) -> None:
        self.ensure_space(20)
        self._place(text, font_size, 'normal')
        self.current_y += font_size * 0.8

    def add_text(self, text: str, font_size: float = 12, style: str = 'normal') -> None:
        lines = self.wrap(text, font_size)
        line_height = font_size * 0.6
        # Keep a block together when it fits on one page, otherwise flow it line by line
        if len(lines) * line_height <= self.page_height - 2 * self.margin:
            self.ensure_space(len(lines) * line_height)
        for line in lines:
            self.ensure_space(line_height)
            self._place(line, font_size, style)
            self.current_y += line_height
        self.current_y += 5

    def add_line(self, text: str, advance: float, font_size: float = 12, style: str = 'normal') -> None:
        """A single unwrapped line followed by a fixed advance."""
        self._place(text, font_size, style)
        self.current_y += advance

    def add_spacing(self, height: float) -> None:
        self.current_y += height

    def add_footer(self, text: str, font_size: float = 8) -> None:
        self._place(text, font_size, 'italic', y=self.page_height - 10)

    def to_html(self) -> str:
        env = Environment(loader=BaseLoader(), autoescape=select_autoescape(default_for_string=True))
        return env.from_string(REPORT_TEMPLATE).render(
            title=self.title,
            pages=self.pages,
            width=self.page_width,
            height=self.page_height,
            margin=self.margin,
        )

    def render(self) -> bytes:
        """PDF bytes via WeasyPrint."""
        from weasyprint import HTML

        return HTML(string=self.to_html(), base_url=str(Path.cwd())).write_pdf()

    def save(self, filename: str) -> Path:
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.render())
        return path


def months_ago(moment: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the month's last day."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def default_period(now: Optional[datetime] = None, months: int = DEFAULT_MONTHS) -> Tuple[datetime, datetime]:
    end = now or utcnow()
    return months_ago(end, months), end


def report_filename(now: Optional[datetime] = None) -> str:
    return f"mood-report-{(now or utcnow()).strftime('%Y-%m-%d')}.pdf"


def _format_date(value: datetime) -> str:
    return value.strftime('%Y-%m-%d')


def _add_entries(doc: ReportDocument, entries: Sequence[Any]) -> None:
    doc.add_subtitle('Journal Entries')

    if not entries:
        doc.add_text('No journal entries found for this period.')
        return

    for index, entry in enumerate(entries[:MAX_ENTRIES], start=1):
        doc.ensure_space(40)
        doc.add_line(f"Entry {index} - {_format_date(aggregation.entry_date(entry))}", 15, style='bold')
        doc.add_line(f"Mood: {aggregation.entry_mood(entry).value}", 12)
        doc.add_text(aggregation.entry_field(entry, 'text') or '', 10)

        summary = aggregation.entry_analysis(entry).get('summary')
        if summary:
            doc.add_text(f"AI Analysis: {summary}", 10, style='italic')
        doc.add_spacing(10)

    if len(entries) > MAX_ENTRIES:
        doc.add_text(f"... and {len(entries) - MAX_ENTRIES} more entries.")


def build_report(entries: Sequence[Any], user: Optional[Dict[str, Any]] = None,
                 start: Optional[datetime] = None, end: Optional[datetime] = None,
                 now: Optional[datetime] = None) -> ReportDocument:
    """Lay out the report for entries dated within [start, end].

    Args:
        entries: Entries, newest first.
        user: User view; the identity block needs its profile.
        start: Period start, defaults to three months before `end`.
        end: Period end, defaults to now.
        now: Generation time.
    """
    now = now or utcnow()
    end = end or now
    start = start or months_ago(end, DEFAULT_MONTHS)
    selected = aggregation.entries_between(entries, start, end)

    doc = ReportDocument()
    doc.add_title(REPORT_TITLE)
    doc.add_spacing(10)

    profile = (user or {}).get('profile')
    if profile:
        doc.add_text(f"Generated for: {profile.get('first_name', '')} {profile.get('last_name', '')}")
        doc.add_text(f"Email: {user.get('email', '')}")

    doc.add_text(f"Report Period: {_format_date(start)} - {_format_date(end)}")
    doc.add_text(f"Generated on: {_format_date(now)}")
    doc.add_text(f"Total Entries: {len(selected)}")
    doc.add_spacing(20)

    doc.add_subtitle('Summary')
    if selected:
        doc.add_text(f"Average mood score: {aggregation.average_score(selected):.1f}/5")
        doc.add_text(f"Most frequent mood: {aggregation.most_frequent_mood(selected)}")
    else:
        doc.add_text('No entries found for this period.')
    doc.add_spacing(15)

    doc.add_subtitle('Mood Distribution')
    for row in aggregation.mood_distribution(selected):
        doc.add_text(f"{row['mood']}: {row['count']} entries ({row['percentage']:.1f}%)")
    doc.add_spacing(15)

    doc.add_subtitle('Most Common Emotions')
    emotions = aggregation.top_emotions(selected, TOP_EMOTIONS)
    if emotions:
        for emotion, count in emotions:
            doc.add_text(f"{emotion}: {count} occurrences")
    else:
        doc.add_text('No emotion data available.')
    doc.add_spacing(15)

    _add_entries(doc, selected)
    doc.add_footer(FOOTER_TEXT)
    return doc


def export_report(entries: Sequence[Any], user: Optional[Dict[str, Any]] = None,
                  start: Optional[datetime] = None, end: Optional[datetime] = None,
                  now: Optional[datetime] = None) -> Tuple[str, bytes]:
    """Build and render the report.

    Returns:
        (filename, pdf bytes)

    Raises:
        ReportGenerationFailed: Layout or rendering failed.
    """
    now = now or utcnow()
    try:
        doc = build_report(entries, user, start, end, now)
        pdf = doc.render()
    except Exception as e:
        logger.error(f"Error generating PDF report: {str(e)}", exc_info=True)
        raise ReportGenerationFailed("Failed to generate PDF report. Please try again.") from e

    logger.info(f"Generated report with {doc.page_count} page(s)")
    return report_filename(now), pdf
