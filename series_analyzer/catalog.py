"""
In-memory series catalog.
Answers the record queries and studio lookups the API and report service need:
filtering, paging, top-N, title search, and studio resolution by id or name.
"""

import math  # page count
import threading  # guards additions from concurrent uploads
from dataclasses import replace  # re-stamp studios with their catalog id
from typing import Iterable, List, Optional, Tuple

from .models import Series, Studio
from .exceptions import ConflictError, SeriesNotFoundError, StudioNotFoundError, ValidationFailedError

from loguru import logger


SORTABLE_FIELDS = ('id', 'title', 'genre', 'seasons', 'rating', 'year', 'finished')


# --- Stateless helpers over plain lists ---

def filter_by_rating(series: Iterable[Series], min_rating: float) -> List[Series]:
	"""Series with rating >= min_rating."""
	return [s for s in series if s.rating >= min_rating]


def filter_by_finished(series: Iterable[Series], finished: bool) -> List[Series]:
	return [s for s in series if s.finished == finished]


def sort_by_rating_desc(series: Iterable[Series]) -> List[Series]:
	"""Highest rating first; ties keep their input order."""
	return sorted(series, key=lambda s: s.rating, reverse=True)


def average_rating(series: Iterable[Series]) -> float:
	"""Mean rating, or 0.0 for an empty set."""
	ratings = [s.rating for s in series]
	return sum(ratings) / len(ratings) if ratings else 0.0


def max_seasons(series: Iterable[Series]) -> Optional[Series]:
	"""The series with the most seasons (first one on ties), or None."""
	return max(series, key=lambda s: s.seasons, default=None)


def matches(
	s: Series,
	studio_id: Optional[int] = None,
	min_rating: Optional[float] = None,
	year: Optional[int] = None,
	genre: Optional[str] = None,
) -> bool:
	"""True when a series passes every filter given (absent filters always pass)."""
	if studio_id is not None and (s.studio is None or s.studio.id != studio_id):
		return False
	if min_rating is not None and s.rating < min_rating:
		return False
	if year is not None and s.year != year:
		return False
	if genre and genre.strip() and genre.strip().lower() not in (s.genre or '').lower():
		return False
	return True


class SeriesCatalog:
	"""
	Holds the loaded series and the studios they reference.

	Studios get 1-based ids in first-seen order (names compared case-insensitively);
	series get 1-based ids by position. Stored series carry the id-stamped studio.
	"""

	def __init__(self, series: Optional[Iterable[Series]] = None):
		self._series: List[Series] = []  # position + 1 == series id
		self._studios: List[Studio] = []  # position + 1 == studio id
		self._lock = threading.Lock()
		for s in series or []:
			self.add(s)
		logger.info(f"[Catalog] Ready with {len(self._series)} series and {len(self._studios)} studios")

	# --- Studios ---

	def _register_studio(self, studio: Optional[Studio]) -> Optional[Studio]:
		if studio is None or not studio.name.strip():
			return None
		known = self._studio_by_name(studio.name)
		if known is not None:
			return known
		registered = replace(studio, name=studio.name.strip(), id=len(self._studios) + 1)
		self._studios.append(registered)
		return registered

	def _studio_by_name(self, name: str) -> Optional[Studio]:
		wanted = name.strip().lower()
		return next((st for st in self._studios if st.name.lower() == wanted), None)

	def studios(self) -> List[Studio]:
		return list(self._studios)

	def find_studio(self, studio_id: int) -> Studio:
		if 1 <= studio_id <= len(self._studios):
			return self._studios[studio_id - 1]
		raise StudioNotFoundError(f"Studio not found: {studio_id}")

	def add_studio(self, name: str, country: str = '') -> Studio:
		"""Register a new studio; names are unique ignoring case."""
		if not name or not name.strip():
			raise ValidationFailedError("Studio name must not be blank")
		with self._lock:
			if self._studio_by_name(name) is not None:
				raise ConflictError(f"Studio already exists: {name.strip()}")
			return self._register_studio(Studio(name=name, country=country or ''))

	def find_studio_by_name(self, name: str) -> Studio:
		studio = self._studio_by_name(name or '')
		if studio is None:
			raise StudioNotFoundError(f"Studio not found: {name}")
		return studio

	# --- Series ---

	def add(self, series: Series) -> int:
		"""Append a series (registering its studio) and return its new id."""
		with self._lock:
			stored = replace(series, studio=self._register_studio(series.studio))
			self._series.append(stored)
			return len(self._series)

	def all(self) -> List[Series]:
		return list(self._series)

	def with_ids(self) -> List[Tuple[int, Series]]:
		return list(enumerate(self._series, 1))

	def __len__(self) -> int:
		return len(self._series)

	def get(self, series_id: int) -> Series:
		if 1 <= series_id <= len(self._series):
			return self._series[series_id - 1]
		raise SeriesNotFoundError(f"Series not found: {series_id}")

	def search(
		self,
		studio_id: Optional[int] = None,
		min_rating: Optional[float] = None,
		year: Optional[int] = None,
		genre: Optional[str] = None,
	) -> List[Series]:
		"""All series matching the given filters, in catalog order."""
		return [s for _, s in self.search_with_ids(studio_id, min_rating, year, genre)]

	def search_with_ids(
		self,
		studio_id: Optional[int] = None,
		min_rating: Optional[float] = None,
		year: Optional[int] = None,
		genre: Optional[str] = None,
	) -> List[Tuple[int, Series]]:
		return [
			(sid, s) for sid, s in self.with_ids()
			if matches(s, studio_id=studio_id, min_rating=min_rating, year=year, genre=genre)
		]

	def page(
		self,
		studio_id: Optional[int] = None,
		min_rating: Optional[float] = None,
		year: Optional[int] = None,
		genre: Optional[str] = None,
		page: int = 1,
		size: int = 10,
		sort_by: str = 'id',
		direction: str = 'ASC',
	) -> Tuple[List[Tuple[int, Series]], int]:
		"""
		One page of filtered series plus the total page count.
		Pages are 1-based: page=1 is the first page.
		"""
		if page < 1 or size < 1:
			raise ValidationFailedError("page and size must be at least 1")
		if sort_by not in SORTABLE_FIELDS:
			raise ValidationFailedError(f"Cannot sort by '{sort_by}'. Supported: {', '.join(SORTABLE_FIELDS)}")
		if direction.upper() not in ('ASC', 'DESC'):
			raise ValidationFailedError(f"Direction must be ASC or DESC, got '{direction}'")

		rows = self.search_with_ids(studio_id, min_rating, year, genre)
		if sort_by == 'id':
			key = lambda row: row[0]
		elif sort_by in ('title', 'genre'):
			key = lambda row: (getattr(row[1], sort_by) or '').lower()
		else:
			key = lambda row: getattr(row[1], sort_by)
		rows.sort(key=key, reverse=direction.upper() == 'DESC')

		total_pages = math.ceil(len(rows) / size)
		start = (page - 1) * size
		return rows[start:start + size], total_pages

	def top_by_rating(self, n: int) -> List[Tuple[int, Series]]:
		"""The n best-rated series, highest first."""
		if n <= 0:
			raise ValidationFailedError("Parameter 'n' must be greater than 0")
		rows = sorted(self.with_ids(), key=lambda row: row[1].rating, reverse=True)
		return rows[:n]

	def find_by_title(self, query: str) -> Tuple[int, Series]:
		"""First series whose title contains `query`, ignoring case."""
		if not query or not query.strip():
			raise ValidationFailedError("Query parameter is required")
		q = query.strip().lower()
		for sid, s in self.with_ids():
			if q in (s.title or '').lower():
				return sid, s
		raise SeriesNotFoundError(f"No series title contains '{query}'")
