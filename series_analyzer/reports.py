"""
Report rendering module.
Turns a list of series into a downloadable CSV, XLSX or JSON file.

All formats share one column layout: Title, Seasons, Rating, Year, Finished, Studio.
Every series must carry a studio; a missing one is a RenderError, not a blank cell.
"""

# Standard libs for in-memory files, JSON and timestamps
import io  # in-memory workbook buffer
import json  # JSON report body
from datetime import datetime  # filename timestamp
from typing import Callable, Dict, List, Optional, Sequence

# openpyxl builds the XLSX workbook
from openpyxl import Workbook  # in-memory spreadsheet
from openpyxl.styles import Font  # bold header row
from openpyxl.utils import get_column_letter  # 1 -> "A"

from .models import RenderedReport, ReportFormat, Series, Studio
from .exceptions import RenderError

from loguru import logger


HEADERS = ['Title', 'Seasons', 'Rating', 'Year', 'Finished', 'Studio']

SHEET_NAME = 'Series'

# 1-based columns holding free text (Title, Studio)
TEXT_COLUMNS = (1, 6)

DEFAULT_PREFIX = 'series-report'

CONTENT_TYPES = {
	ReportFormat.CSV: 'text/csv',
	ReportFormat.XLSX: 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
	ReportFormat.JSON: 'application/json',
}


def _require_studio(s: Series, row: int) -> Studio:
	"""Every report row dereferences the studio; fail loudly when it is missing."""
	if s.studio is None:
		raise RenderError(f"Series #{row} '{s.title}' has no studio; cannot render report")
	return s.studio


def _quote(value: Optional[str]) -> str:
	"""Wrap a text field in double quotes, doubling any quotes inside it."""
	return '"' + (value or '').replace('"', '""') + '"'


def _bool_text(value: bool) -> str:
	return 'true' if value else 'false'


def render_csv(series: Sequence[Series]) -> bytes:
	"""
	CSV with a header row. Text fields (title, studio) are always quoted;
	numbers and booleans are written bare. Encoded as UTF-8.
	"""
	lines = [','.join(HEADERS)]
	for row, s in enumerate(series, 1):
		studio = _require_studio(s, row)
		lines.append(','.join([
			_quote(s.title),
			str(s.seasons),
			repr(float(s.rating)),
			str(s.year),
			_bool_text(s.finished),
			_quote(studio.name),
		]))
	text = '\n'.join(lines) + '\n'
	try:
		return text.encode('utf-8')
	except UnicodeEncodeError as e:  # lone surrogates in a title
		raise RenderError(f"Failed to encode CSV report: {e}") from e


def render_xlsx(series: Sequence[Series]) -> bytes:
	"""
	Single-sheet workbook: bold header, one row per series, numeric and
	boolean cells for the non-text columns, column widths fitted to content.
	"""
	rows = []
	for row, s in enumerate(series, 1):
		studio = _require_studio(s, row)
		rows.append([s.title, int(s.seasons), float(s.rating), int(s.year), bool(s.finished), studio.name])

	try:
		wb = Workbook()
		ws = wb.active
		ws.title = SHEET_NAME

		ws.append(HEADERS)
		for cell in ws[1]:
			cell.font = Font(bold=True)
		for values in rows:
			ws.append(values)
			# openpyxl reads a leading '=' as a formula; titles and studios stay text
			for col in TEXT_COLUMNS:
				ws.cell(row=ws.max_row, column=col).data_type = 's'

		# openpyxl has no autosize; approximate it from the longest rendered value
		for col, header in enumerate(HEADERS, 1):
			longest = max([len(header)] + [len(str(r[col - 1])) for r in rows])
			ws.column_dimensions[get_column_letter(col)].width = longest + 2

		buffer = io.BytesIO()
		wb.save(buffer)
		return buffer.getvalue()
	except Exception as e:
		raise RenderError(f"Failed to write Excel report: {e}") from e


def series_to_dict(s: Series, row: int = 1) -> dict:
	"""JSON shape of one series inside a report."""
	studio = _require_studio(s, row)
	return {
		'title': s.title,
		'genre': s.genre,
		'seasons': s.seasons,
		'rating': s.rating,
		'year': s.year,
		'finished': s.finished,
		'studio': {'name': studio.name, 'country': studio.country},
	}


def render_json(series: Sequence[Series]) -> bytes:
	"""Pretty-printed JSON array with one object per series. Non-finite ratings are a RenderError."""
	items = [series_to_dict(s, row) for row, s in enumerate(series, 1)]
	try:
		return json.dumps(items, indent=2, ensure_ascii=False, allow_nan=False).encode('utf-8')
	except (TypeError, ValueError, UnicodeEncodeError) as e:
		raise RenderError(f"Failed to write JSON report: {e}") from e


_RENDERERS: Dict[ReportFormat, Callable[[Sequence[Series]], bytes]] = {
	ReportFormat.CSV: render_csv,
	ReportFormat.XLSX: render_xlsx,
	ReportFormat.JSON: render_json,
}


def report_filename(fmt: ReportFormat, prefix: str = DEFAULT_PREFIX, now: Optional[datetime] = None) -> str:
	"""<prefix>-<yyyyMMdd-HHmmss>.<ext>"""
	now = now or datetime.now()
	return f"{prefix}-{now.strftime('%Y%m%d-%H%M%S')}.{fmt.value}"


def render_report(
	series: List[Series],
	fmt=None,
	prefix: str = DEFAULT_PREFIX,
	now: Optional[datetime] = None,
) -> RenderedReport:
	"""
	Render series into the requested format.
	`fmt` may be a ReportFormat or a string; blank or unknown strings mean CSV.
	"""
	if not isinstance(fmt, ReportFormat):
		fmt = ReportFormat.parse(fmt)
	data = _RENDERERS[fmt](series)
	filename = report_filename(fmt, prefix=prefix, now=now)
	logger.info(f"[Reports] Rendered {len(series)} series as {fmt.value} ({len(data)} bytes) -> {filename}")
	return RenderedReport(data=data, filename=filename, content_type=CONTENT_TYPES[fmt])
