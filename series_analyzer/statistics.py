"""
Statistics module.
Counts how often each value of a chosen attribute occurs across a set of
series and serialises the resulting frequency table to JSON-ready dicts or XML.
"""

import math  # non-finite ratings
from collections import Counter  # running counts per key
from decimal import Decimal, ROUND_HALF_UP  # locale-free one-decimal rounding
from pathlib import Path  # output file paths
from typing import Callable, Dict, Iterable, List, Optional, Union
from xml.etree import ElementTree as ET  # tagged XML output

from .models import FrequencyTable, Series
from .exceptions import InvalidAttributeError, UnsupportedAttributeError

from loguru import logger


# Attributes a frequency table can be grouped by, in display order
SUPPORTED_ATTRIBUTES = ('title', 'genre', 'seasons', 'rating', 'year', 'finished')

UNKNOWN = 'unknown'


def _title_keys(s: Series) -> List[str]:
	title = (s.title or '').strip()
	return [title or UNKNOWN]


def _genre_keys(s: Series) -> List[str]:
	"""Split "Drama, Sci-Fi" into ["Drama", "Sci-Fi"]; blanks collapse to "unknown"."""
	genres = [g.strip() for g in (s.genre or '').split(',') if g.strip()]
	return genres or [UNKNOWN]


def format_rating(rating: float) -> str:
	"""One fractional digit, half-up on the decimal form: 8.74 -> 8.7, 8.75 -> 8.8."""
	rating = float(rating)
	if math.isnan(rating):
		return 'NaN'
	if math.isinf(rating):
		return 'Infinity' if rating > 0 else '-Infinity'
	return str(Decimal(repr(float(rating))).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


_KEY_EXTRACTORS: Dict[str, Callable[[Series], List[str]]] = {
	'title': _title_keys,
	'genre': _genre_keys,
	'seasons': lambda s: [str(int(s.seasons))],
	'rating': lambda s: [format_rating(s.rating)],
	'year': lambda s: [str(int(s.year))],
	'finished': lambda s: ['true' if s.finished else 'false'],
}


def normalize_attribute(attribute: Optional[str]) -> str:
	"""
	Validate and canonicalise an attribute name (trimmed, lower-case).
	Raises InvalidAttributeError when blank and UnsupportedAttributeError when unknown.
	"""
	if attribute is None or not attribute.strip():
		raise InvalidAttributeError(SUPPORTED_ATTRIBUTES)
	name = attribute.strip().lower()
	if name not in _KEY_EXTRACTORS:
		raise UnsupportedAttributeError(attribute, SUPPORTED_ATTRIBUTES)
	return name


def extract_keys(series: Series, attribute: str) -> List[str]:
	"""Return the grouping key(s) one series contributes for an attribute."""
	return _KEY_EXTRACTORS[normalize_attribute(attribute)](series)


def _table_order(item):
	key, count = item
	# count desc, then case-insensitive key, then raw key so the order is total
	return (-count, key.casefold(), key)


def count_by_attribute(series: Optional[Iterable[Optional[Series]]], attribute: Optional[str]) -> FrequencyTable:
	"""
	Count occurrences of each attribute value.

	Multi-valued attributes (genre) add one count per value, so the counts
	may sum to more than the number of series. The table is sorted by count
	descending, then by key ascending ignoring case. A None series set yields
	an empty table.
	"""
	if series is None:
		return []

	name = normalize_attribute(attribute)
	extract = _KEY_EXTRACTORS[name]

	counts: Counter = Counter()
	for s in series:
		if s is None:
			continue  # skip holes rather than failing the whole table
		counts.update(extract(s))

	table = sorted(counts.items(), key=_table_order)
	logger.debug(f"[Stats] Counted {len(table)} distinct values by '{name}'")
	return table


# --- Serialisation ---

def statistics_to_dict(table: FrequencyTable, attribute: str) -> dict:
	"""Tagged list form: {"by": attribute, "items": [{"value": ..., "count": ...}]}."""
	return {
		'by': attribute,
		'items': [{'value': key, 'count': count} for key, count in table],
	}


def statistics_to_xml(table: FrequencyTable, attribute: str) -> bytes:
	"""
	Render a table as
	<statistics by="genre"><item><value>Drama</value><count>2</count></item>...</statistics>
	"""
	root = ET.Element('statistics', {'by': attribute})
	for key, count in table:
		item = ET.SubElement(root, 'item')
		ET.SubElement(item, 'value').text = key
		ET.SubElement(item, 'count').text = str(count)
	ET.indent(root, space='  ')
	return ET.tostring(root, encoding='utf-8', xml_declaration=True)


def write_statistics_xml(table: FrequencyTable, attribute: str, output: Union[str, Path]) -> Path:
	"""Write the XML form of a table to `output` and return the path written."""
	output = Path(output)
	output.write_bytes(statistics_to_xml(table, attribute))
	logger.info(f"[Stats] Saved statistics by '{attribute}' to {output}")
	return output
