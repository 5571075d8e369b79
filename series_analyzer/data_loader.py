"""
Data loading module.
Parses series JSON documents (one object or an array of objects per file)
and loads whole folders of them in parallel.
"""

# Standard libs for JSON parsing, thread pools, typing, and paths
import json  # parse JSON documents
import math  # finite number checks
from concurrent.futures import ThreadPoolExecutor  # fixed-size worker pool
from pathlib import Path  # filesystem-safe paths
from typing import Any, Dict, Iterable, List, Optional, Union  # type hints

# Import our data classes and errors
from .models import Series, Studio  # structured series record
from .exceptions import LoadError, ParseError  # loader failures

# Console logging
from loguru import logger  # console logger


# Worker count used when the caller does not pick one
DEFAULT_WORKERS = 4

# Only files with this exact (case-sensitive) suffix are loaded from a folder
JSON_SUFFIX = '.json'


def parse_series_bytes(raw: bytes, source: str) -> List[Series]:
	"""
	Parse one document into series records.
	A document starting with '[' is an array of records; anything else is a
	single record and comes back as a one-element list.
	Raises ParseError (naming `source`) for malformed JSON or mistyped fields.
	"""
	try:
		text = raw.decode('utf-8-sig')  # tolerate a UTF-8 byte order mark
	except UnicodeDecodeError as e:
		raise ParseError(source, f"not valid UTF-8 ({e})") from e

	def reject_constant(name: str):
		# NaN / Infinity / -Infinity are not JSON
		raise ParseError(source, f"non-standard JSON constant {name}")

	try:
		data = json.loads(text, parse_constant=reject_constant)
	except json.JSONDecodeError as e:
		raise ParseError(source, f"invalid JSON at line {e.lineno} column {e.colno}: {e.msg}") from e

	# The first significant character decides between array and single object
	if text.lstrip().startswith('['):
		items = data
	else:
		items = [data]

	series = []  # accumulator for parsed records
	for index, item in enumerate(items):
		if not isinstance(item, dict):
			raise ParseError(source, f"record #{index + 1} is not a JSON object")
		series.append(_series_from_dict(item, source))
	return series


def _series_from_dict(data: Dict[str, Any], source: str) -> Series:
	"""
	Convert a raw dictionary into a Series.
	Missing or null fields become zero values; only wrong types are errors.
	"""
	try:
		return Series(
			title=_as_str(data.get('title')),
			genre=_as_str(data.get('genre')),
			seasons=_as_int(data.get('seasons')),
			rating=_as_float(data.get('rating')),
			year=_as_int(data.get('year')),
			finished=_as_bool(data.get('finished')),
			studio=_studio_from_value(data.get('studio')),
		)
	except (TypeError, ValueError) as e:
		raise ParseError(source, str(e)) from e


def _studio_from_value(value: Any) -> Optional[Studio]:
	"""A missing or null studio is allowed; resolving it is the catalog's job."""
	if value is None:
		return None
	if not isinstance(value, dict):
		raise TypeError(f"studio must be an object, got {type(value).__name__}")
	return Studio(name=_as_str(value.get('name')), country=_as_str(value.get('country')))


def _as_str(value: Any) -> str:
	if value is None:
		return ''
	if isinstance(value, (dict, list)):
		raise TypeError(f"expected a string, got {type(value).__name__}")
	if isinstance(value, bool):
		return 'true' if value else 'false'
	return str(value)


def _as_int(value: Any) -> int:
	if value is None:
		return 0
	if isinstance(value, bool) or isinstance(value, (dict, list)):
		raise TypeError(f"expected an integer, got {value!r}")
	if isinstance(value, float):
		if not value.is_integer():
			raise ValueError(f"expected an integer, got {value!r}")
		return int(value)
	return int(value)  # ints and numeric strings; ValueError otherwise


def _as_float(value: Any) -> float:
	if value is None:
		return 0.0
	if isinstance(value, bool) or isinstance(value, (dict, list)):
		raise TypeError(f"expected a number, got {value!r}")
	number = float(value)  # numeric strings; ValueError otherwise
	if not math.isfinite(number):
		raise ValueError(f"expected a finite number, got {value!r}")  # 1e400, "NaN"
	return number


def _as_bool(value: Any) -> bool:
	if value is None:
		return False
	if isinstance(value, bool):
		return value
	if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
		return value.strip().lower() == 'true'
	raise TypeError(f"expected a boolean, got {value!r}")


class SeriesLoader:
	"""
	Loads series from JSON files: one file, a list of files, or a whole folder.
	Folder loads parse files on a fixed-size thread pool and keep the result
	in file order, so repeated loads of the same folder are identical.
	"""

	def __init__(self, workers: int = DEFAULT_WORKERS):
		"""Set the default pool size used by load_from_folder."""
		if workers < 1:
			raise ValueError(f"workers must be at least 1, got {workers}")
		self.workers = workers  # default pool size

	def load_file(self, path: Union[str, Path]) -> List[Series]:
		"""Load every series record held in one JSON file."""
		return self._parse_file(Path(path))

	def load_all(self, paths: Iterable[Union[str, Path]]) -> List[Series]:
		"""Load several files one after another and concatenate the results."""
		series: List[Series] = []
		for p in paths:
			series.extend(self.load_file(p))
		return series

	def list_json_files(self, folder: Union[str, Path]) -> List[Path]:
		"""
		Return the folder's immediate *.json files sorted by name.
		Subdirectories are not visited; the suffix check is case-sensitive.
		"""
		folder = Path(folder)
		try:
			entries = list(folder.iterdir())
		except OSError as e:
			raise LoadError(str(folder), f"cannot list directory ({e})") from e
		files = [p for p in entries if p.name.endswith(JSON_SUFFIX) and p.is_file()]
		return sorted(files, key=lambda p: p.name)

	def load_from_folder(self, folder: Union[str, Path], workers: Optional[int] = None) -> List[Series]:
		"""
		Load all JSON files of a folder in parallel.

		Every file becomes one task on a pool of `workers` threads. The call
		waits for all tasks, then either returns the records concatenated in
		file order or, if any file failed, raises LoadError wrapping the first
		failing file's ParseError. Partial results are never returned.
		"""
		workers = self.workers if workers is None else workers
		if workers < 1:
			raise ValueError(f"workers must be at least 1, got {workers}")

		folder = Path(folder)
		files = self.list_json_files(folder)
		logger.info(f"[Loader] Loading {len(files)} JSON files from {folder} with {workers} workers")
		if not files:
			return []  # nothing to parse

		# Index-addressed slots keep submission order regardless of completion order
		results: List[Optional[List[Series]]] = [None] * len(files)
		errors: List[Optional[ParseError]] = [None] * len(files)

		# The with-block shuts the pool down on success and on failure
		with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='series-loader') as pool:
			futures = [pool.submit(self._parse_file, f) for f in files]
			for index, future in enumerate(futures):
				try:
					results[index] = future.result()
				except ParseError as e:
					errors[index] = e

		first_error = next((e for e in errors if e is not None), None)
		if first_error is not None:
			failed = sum(1 for e in errors if e is not None)
			logger.warning(f"[Loader] {failed} of {len(files)} files failed to parse in {folder}")
			raise LoadError(str(folder), str(first_error), parse_error=first_error) from first_error

		series = [s for chunk in results for s in chunk]
		logger.info(f"[Loader] Successfully loaded {len(series)} series from {len(files)} files")
		return series

	def _parse_file(self, path: Path) -> List[Series]:
		"""Read one file fully and parse it; I/O problems count as parse failures."""
		logger.debug(f"[Loader] Parsing {path.name}")
		try:
			raw = path.read_bytes()
		except OSError as e:
			raise ParseError(str(path), f"cannot read file ({e})") from e
		return parse_series_bytes(raw, str(path))
