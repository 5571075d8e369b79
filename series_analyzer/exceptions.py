"""
Exceptions raised by the Series Analyzer.

Errors fall into three families so a boundary layer (the HTTP API, the batch
script) can pick a response without inspecting messages:
- BadInputError: the caller sent something we cannot use
- NotFoundError: the caller asked for something that does not exist
- InternalError: we failed while producing a result
"""

from typing import Iterable, Optional


class SeriesAnalyzerError(Exception):
	"""Base exception for all Series Analyzer errors."""
	pass


# --- Bad input ---

class BadInputError(SeriesAnalyzerError):
	"""Base class for errors caused by invalid input."""
	pass


class ParseError(BadInputError):
	"""Raised when a JSON document cannot be turned into series records."""

	def __init__(self, source: str, reason: str):
		self.source = source  # file name or upload name
		self.reason = reason  # what went wrong
		super().__init__(f"Failed to parse series from {source}: {reason}")


class InvalidAttributeError(BadInputError):
	"""Raised when the grouping attribute is blank or missing."""

	def __init__(self, supported: Iterable[str]):
		self.supported = tuple(supported)
		super().__init__(f"Attribute is empty. Supported: {', '.join(self.supported)}")


class UnsupportedAttributeError(BadInputError):
	"""Raised when the grouping attribute is not one we know how to count."""

	def __init__(self, attribute: str, supported: Iterable[str]):
		self.attribute = attribute
		self.supported = tuple(supported)
		super().__init__(
			f"Unsupported attribute: {attribute}. Supported: {', '.join(self.supported)}"
		)


class ValidationFailedError(BadInputError):
	"""Raised when a request parameter is out of range (e.g. top n <= 0)."""
	pass


# --- Not found ---

class NotFoundError(SeriesAnalyzerError):
	"""Base class for lookups that found nothing."""
	pass


class ReportNotFoundError(NotFoundError):
	"""Raised when no stored report exists for a job id."""

	def __init__(self, job_id: str):
		self.job_id = job_id
		super().__init__(f"Report job not found: {job_id}")


class SeriesNotFoundError(NotFoundError):
	"""Raised when a series id or title query matches nothing."""
	pass


class StudioNotFoundError(NotFoundError):
	"""Raised when a studio id or name is unknown to the catalog."""
	pass


# --- Internal ---

class InternalError(SeriesAnalyzerError):
	"""Base class for failures while producing a result."""
	pass


class RenderError(InternalError):
	"""Raised when a report cannot be rendered into the requested format."""
	pass


class LoadError(InternalError):
	"""
	Raised when a folder load fails as a whole.
	When a file failed to parse, `parse_error` holds the first ParseError.
	"""

	def __init__(self, folder: str, message: str, parse_error: Optional[ParseError] = None):
		self.folder = folder
		self.parse_error = parse_error
		super().__init__(f"Failed to load from folder {folder}: {message}")


# --- Conflicts ---

class ConflictError(SeriesAnalyzerError):
	"""Raised when creating something that already exists (e.g. a studio name)."""
	pass
