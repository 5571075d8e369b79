"""
Data models for the Series Analyzer.
Defines the core data structures shared by the loader, statistics and reports.
"""

# Import dataclass to define simple "record-like" classes without boilerplate
from dataclasses import dataclass, field  # auto-generates __init__, __repr__, etc.
# Import datetime to stamp stored report jobs
from datetime import datetime  # creation time of a job
# Enum for the closed set of report formats
from enum import Enum  # csv / xlsx / json
# Import typing helpers for precise and self-documenting types
from typing import List, Optional, Tuple  # lists, optional values, and fixed-size tuples


# Ordered (key, count) pairs produced by the statistics service
FrequencyTable = List[Tuple[str, int]]


@dataclass(frozen=True)
class Studio:
	"""
	The studio (network, streaming service) that produced a series.
	The id is only known once a catalog has registered the studio.
	"""
	name: str  # display name, e.g. "Netflix"
	country: str = ''  # country of origin, may be empty
	id: Optional[int] = None  # catalog-assigned id (1-based)


@dataclass(frozen=True)
class Series:
	"""
	Represents a single TV series as read from a JSON document.
	Missing fields in the source document arrive here as zero values.
	"""
	title: str = ''  # series title as written in the source
	genre: str = ''  # one or more genres, comma-separated ("Drama, Sci-Fi")
	seasons: int = 0  # number of seasons
	rating: float = 0.0  # average rating on a 0-10 scale
	year: int = 0  # release year
	finished: bool = False  # True when the series has ended
	studio: Optional[Studio] = None  # producing studio, if the source named one


class ReportFormat(str, Enum):
	"""Output formats a report can be rendered into."""
	CSV = 'csv'
	XLSX = 'xlsx'
	JSON = 'json'

	@classmethod
	def parse(cls, value: Optional[str]) -> 'ReportFormat':
		"""Case-insensitive lookup; blank or unknown values fall back to CSV."""
		if not value or not value.strip():
			return cls.CSV
		try:
			return cls(value.strip().lower())
		except ValueError:
			return cls.CSV


@dataclass(frozen=True)
class RenderedReport:
	"""A rendered report payload plus the headers needed to deliver it."""
	data: bytes  # file contents
	filename: str  # suggested download filename
	content_type: str  # MIME type of the payload


@dataclass(frozen=True)
class ReportJob:
	"""A stored report waiting to be downloaded (possibly many times)."""
	job_id: str  # opaque, unguessable identifier
	data: bytes  # rendered payload
	filename: str  # download filename
	content_type: str  # MIME type
	created_at: datetime = field(default_factory=datetime.now)  # when it was stored


@dataclass
class ReportRequest:
	"""
	Filters and delivery options for a report.
	Every filter is optional; the ones given are combined with AND.
	"""
	studio_id: Optional[int] = None  # only series of this studio
	min_rating: Optional[float] = None  # rating >= min_rating
	year: Optional[int] = None  # exact release year
	genre: Optional[str] = None  # case-insensitive substring of the genre text
	format: Optional[str] = None  # csv | xlsx | json (default csv)
	async_mode: bool = False  # store the report and return a job handle


@dataclass(frozen=True)
class SyncReport:
	"""Result of a synchronous report request: the payload itself."""
	report: RenderedReport


@dataclass(frozen=True)
class AsyncReportHandle:
	"""Result of an asynchronous report request: where to fetch it later."""
	job_id: str
	download_url: str
