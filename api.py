"""
FastAPI server exposing the series statistics and report API.
Endpoints:
- GET  /health: basic health check
- GET  /api/v1/statistics/{attribute}?format=json|xml: frequency table
- GET  /api/v1/series, /api/v1/series/{id}, /api/v1/series/top, /api/v1/series/search
- POST /api/v1/series/_list: filtered, paged listing
- POST /api/v1/series/_report: CSV/XLSX/JSON report, sync or as a stored job
- GET  /api/v1/series/_report/{job_id}: download a stored report
- POST /api/v1/series/upload: import series from a JSON file
- GET/POST /api/v1/studios: list or create studios

Startup loads every *.json file of the configured data folder in parallel.
"""

# Import standard libraries for JSON parsing and timing
import json  # decode uploaded files
import time  # measure startup latency
from datetime import date  # "finished series cannot be in the future"
from typing import List, Optional  # precise typing for clarity

# Import FastAPI for building the web API and Pydantic for request/response models
from fastapi import FastAPI, File, Query, Request, UploadFile  # FastAPI primitives
from fastapi.responses import JSONResponse, Response  # raw file and error bodies
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

# Import our internal modules
from series_analyzer.catalog import SeriesCatalog  # in-memory record queries
from series_analyzer.config import data_dir, settings  # dynaconf settings
from series_analyzer.data_loader import SeriesLoader  # parallel folder loader
from series_analyzer.exceptions import (
	BadInputError,
	ConflictError,
	InternalError,
	NotFoundError,
	ParseError,
	ValidationFailedError,
)
from series_analyzer.models import AsyncReportHandle, ReportRequest, Series, Studio
from series_analyzer.report_service import ReportService  # render + job store
from series_analyzer.report_store import ReportJobStore  # parked async reports
from series_analyzer.statistics import count_by_attribute, statistics_to_dict, statistics_to_xml

# Import loguru for simple, structured console logging
from loguru import logger  # convenient console logger

# Instantiate the FastAPI application with metadata
app = FastAPI(title="Series Analyzer API", version="1.0.0")  # web app

# Globals that hold the catalog, report service and measured startup time
CATALOG: SeriesCatalog = SeriesCatalog()  # replaced at startup
REPORTS: ReportService = ReportService(CATALOG)  # replaced at startup
STARTUP_TIME_S: float = 0.0  # measures how long startup took

# Upload summaries keep at most this many error entries
MAX_UPLOAD_ERRORS = 20


def init_state(catalog: SeriesCatalog, store: Optional[ReportJobStore] = None) -> None:
	"""Point the API at a catalog (and optionally a job store)."""
	global CATALOG, REPORTS
	CATALOG = catalog
	REPORTS = ReportService(
		catalog,
		store=store if store is not None else ReportJobStore(
			max_jobs=settings.get("report_store_max_jobs", 0),
			ttl_seconds=settings.get("report_store_ttl_seconds", 0),
		),
		prefix=settings.get("report_prefix", "series-report"),
	)


# --- Schemas ---

class StudioOut(BaseModel):
	id: Optional[int] = None  # catalog id
	name: str  # display name
	country: str  # country of origin


class SeriesOut(BaseModel):
	id: int  # catalog id (1-based position)
	title: str
	genre: str
	seasons: int
	rating: float
	year: int
	finished: bool
	studio: Optional[StudioOut] = None  # absent when the source named none


class SeriesListRequest(BaseModel):
	"""Filters, paging and report options shared by _list and _report."""
	model_config = ConfigDict(populate_by_name=True)

	studio_id: Optional[int] = Field(None, alias="studioId")
	min_rating: Optional[float] = Field(None, alias="minRating", ge=0)
	year: Optional[int] = None
	genre: Optional[str] = None
	page: int = Field(1, ge=1)
	size: int = Field(10, ge=1)
	sort_by: str = Field("id", alias="sortBy")
	direction: str = "ASC"
	format: Optional[str] = None  # csv | xlsx | json
	async_mode: Optional[bool] = Field(None, alias="async")


class SeriesPage(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	list: List[SeriesOut]
	total_pages: int = Field(..., alias="totalPages")


class StatisticsItem(BaseModel):
	value: str
	count: int


class StatisticsOut(BaseModel):
	by: str  # grouping attribute
	items: List[StatisticsItem]  # ordered by count desc, value asc


class StudioIn(BaseModel):
	name: Optional[str] = None
	country: Optional[str] = None


def _check_text(value: str, field: str) -> str:
	"""Letters, digits, spaces and . : ' - (plus commas between genres)."""
	allowed = " .:'-," if field == "genre" else " .:'-"
	if not value.strip():
		raise ValueError(f"{field.capitalize()} must not be blank")
	if not all(ch.isalnum() or ch in allowed for ch in value):
		raise ValueError(f"{field.capitalize()} contains invalid characters")
	return value


class SeriesIn(BaseModel):
	"""One imported series; the same rules apply as for creating a series by hand."""
	title: str = Field(..., min_length=2, max_length=255)
	genre: str = Field(..., min_length=2, max_length=255)
	seasons: int = Field(0, ge=1, le=100, validate_default=True)
	rating: float = Field(0.0, ge=0.0, le=10.0)
	year: int = Field(0, ge=1900, le=2100, validate_default=True)
	finished: bool  # must be provided explicitly
	studio: Optional[StudioIn] = None

	@field_validator("title")
	@classmethod
	def _title_chars(cls, v: str) -> str:
		return _check_text(v, "title")

	@field_validator("genre")
	@classmethod
	def _genre_chars(cls, v: str) -> str:
		return _check_text(v, "genre")

	@field_validator("rating")
	@classmethod
	def _one_decimal(cls, v: float) -> float:
		if round(v, 1) != v:
			raise ValueError("Rating must have max 1 decimal place")
		return v

	@model_validator(mode="after")
	def _consistent_state(self) -> "SeriesIn":
		if self.studio is None or not (self.studio.name or "").strip():
			raise ValueError("Studio name is required")
		if self.finished and self.year > date.today().year:
			raise ValueError("Finished series cannot be in the future")
		if not self.finished and self.year < 1950:
			raise ValueError("Ongoing series cannot start before 1950")
		return self


def _series_out(series_id: int, s: Series) -> SeriesOut:
	"""Convert a catalog entry to its response schema."""
	studio = None
	if s.studio is not None:
		studio = StudioOut(id=s.studio.id, name=s.studio.name, country=s.studio.country)
	return SeriesOut(
		id=series_id,
		title=s.title,
		genre=s.genre,
		seasons=s.seasons,
		rating=s.rating,
		year=s.year,
		finished=s.finished,
		studio=studio,
	)


def _file_response(data: bytes, filename: str, content_type: str) -> Response:
	"""Attachment response shared by sync reports and job downloads."""
	return Response(
		content=data,
		media_type=content_type,
		headers={"Content-Disposition": f'attachment; filename="{filename}"'},
	)


# --- Error mapping ---

def _error_body(status: int, error: str, message: str) -> JSONResponse:
	return JSONResponse(status_code=status, content={"status": status, "error": error, "message": message})


@app.exception_handler(BadInputError)
async def bad_input_handler(request: Request, exc: BadInputError):
	logger.info(f"[API] {request.url.path} bad request: {exc}")
	return _error_body(400, "Bad request", str(exc))


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
	logger.info(f"[API] {request.url.path} not found: {exc}")
	return _error_body(404, "Not found", str(exc))


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
	return _error_body(409, "Conflict", str(exc))


@app.exception_handler(InternalError)
async def internal_handler(request: Request, exc: InternalError):
	logger.error(f"[API] {request.url.path} failed: {exc}")
	return _error_body(500, "Internal error", str(exc))


# --- Lifecycle ---

# FastAPI startup hook to load the dataset once
@app.on_event("startup")
async def startup_event():
	"""Load the data folder into the catalog and log how long it took."""
	global STARTUP_TIME_S  # refer to module-level global
	start = time.time()  # start timer for startup latency

	folder = data_dir()  # configured data folder
	logger.info(f"[API] Startup: loading series from {folder}...")  # log intent

	series: List[Series] = []
	if folder.is_dir():
		loader = SeriesLoader(workers=int(settings.get("loader_workers", 4)))  # parallel loader
		series = loader.load_from_folder(folder)  # malformed files abort startup
	else:
		logger.warning(f"[API] Data folder {folder} not found; starting with an empty catalog")

	init_state(SeriesCatalog(series))  # fresh catalog + job store

	STARTUP_TIME_S = time.time() - start  # elapsed seconds
	logger.info(f"[API] Startup complete in {STARTUP_TIME_S:.2f}s with {len(series)} series.")  # summary log


# Simple health endpoint for readiness checks
@app.get("/health")
async def health():
	"""Return minimal health info for liveness/readiness probes."""
	return {
		"status": "ok",  # constant indicator
		"series": len(CATALOG),  # catalog size
		"startup_seconds": round(STARTUP_TIME_S, 2)  # startup latency
	}


# --- Statistics ---

@app.get("/api/v1/statistics/{attribute}", response_model=StatisticsOut)
async def statistics(attribute: str, format: str = Query("json", description="json or xml")):
	"""Frequency table of an attribute over the whole catalog."""
	table = count_by_attribute(CATALOG.all(), attribute)  # raises on bad attribute
	by = attribute.strip().lower()
	if format.lower() == "xml":
		return Response(content=statistics_to_xml(table, by), media_type="application/xml")
	return statistics_to_dict(table, by)


# --- Series ---

@app.get("/api/v1/series", response_model=List[SeriesOut])
async def list_all():
	return [_series_out(sid, s) for sid, s in CATALOG.with_ids()]


@app.get("/api/v1/series/top", response_model=List[SeriesOut])
async def top(n: int = 5):
	"""Top n series by rating."""
	return [_series_out(sid, s) for sid, s in CATALOG.top_by_rating(n)]


@app.get("/api/v1/series/search", response_model=SeriesOut)
async def search(query: Optional[str] = None):
	"""First series whose title contains the query."""
	sid, s = CATALOG.find_by_title(query or "")
	return _series_out(sid, s)


@app.get("/api/v1/series/{series_id}", response_model=SeriesOut)
async def get_one(series_id: int):
	return _series_out(series_id, CATALOG.get(series_id))


@app.post("/api/v1/series/_list", response_model=SeriesPage, response_model_by_alias=True)
async def list_page(request: SeriesListRequest):
	"""Filtered listing with 1-based paging."""
	rows, total_pages = CATALOG.page(
		studio_id=request.studio_id,
		min_rating=request.min_rating,
		year=request.year,
		genre=request.genre,
		page=request.page,
		size=request.size,
		sort_by=request.sort_by,
		direction=request.direction,
	)
	return SeriesPage(list=[_series_out(sid, s) for sid, s in rows], total_pages=total_pages)


# --- Reports ---

@app.post("/api/v1/series/_report")
async def report(request: SeriesListRequest):
	"""Render a report now, or store it and return where to download it."""
	result = REPORTS.generate(ReportRequest(
		studio_id=request.studio_id,
		min_rating=request.min_rating,
		year=request.year,
		genre=request.genre,
		format=request.format,
		async_mode=bool(request.async_mode),
	))
	if isinstance(result, AsyncReportHandle):
		return JSONResponse(status_code=202, content={"jobId": result.job_id, "downloadUrl": result.download_url})
	r = result.report
	return _file_response(r.data, r.filename, r.content_type)


@app.get("/api/v1/series/_report/{job_id}")
async def download_report(job_id: str):
	"""Download a stored report; it stays available for further downloads."""
	job = REPORTS.download(job_id)  # ReportNotFoundError -> 404
	return _file_response(job.data, job.filename, job.content_type)


# --- Upload ---

def _reject_constant(name: str):
	raise ValueError(f"non-standard JSON constant {name}")


def _validation_details(e: ValidationError) -> List[str]:
	details = []
	for err in e.errors():
		where = ".".join(str(part) for part in err["loc"]) or "item"
		details.append(f"{where}: {err['msg']}")
	return details


@app.post("/api/v1/series/upload")
async def upload(file: UploadFile = File(...)):
	"""
	Import series from a JSON file (one object or an array).
	Each item is validated on its own; the studio must already be known.
	"""
	raw = await file.read()
	if not raw:
		raise ValidationFailedError("File is required")
	source = file.filename or "upload"
	try:
		data = json.loads(raw.decode("utf-8-sig"), parse_constant=_reject_constant)
	except (UnicodeDecodeError, ValueError) as e:  # JSONDecodeError is a ValueError
		raise ParseError(source, "Invalid JSON file") from e
	items = data if isinstance(data, list) else [data]

	success, failed = 0, 0
	errors = []
	for index, item in enumerate(items, 1):
		try:
			validated = SeriesIn.model_validate(item)
		except ValidationError as e:
			failed += 1
			errors.append({"index": index, "reason": "validation", "details": _validation_details(e)})
			continue
		try:
			studio = CATALOG.find_studio_by_name(validated.studio.name)
		except NotFoundError as e:
			failed += 1
			errors.append({"index": index, "reason": "import", "details": str(e)})
			continue
		CATALOG.add(Series(
			title=validated.title,
			genre=validated.genre,
			seasons=validated.seasons,
			rating=validated.rating,
			year=validated.year,
			finished=validated.finished,
			studio=studio,
		))
		success += 1

	logger.info(f"[API] Upload {source}: {success} imported, {failed} failed")
	return {"success": success, "failed": failed, "errors": errors[:MAX_UPLOAD_ERRORS]}


# --- Studios ---

@app.get("/api/v1/studios", response_model=List[StudioOut])
async def studios():
	return [StudioOut(id=st.id, name=st.name, country=st.country) for st in CATALOG.studios()]


@app.post("/api/v1/studios", response_model=StudioOut, status_code=201)
async def create_studio(studio: StudioIn):
	created: Studio = CATALOG.add_studio(studio.name or "", studio.country or "")
	return StudioOut(id=created.id, name=created.name, country=created.country)
