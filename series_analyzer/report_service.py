"""
Report orchestration.
Filters the catalog, renders the requested format, and either hands the file
straight back or parks it in the job store for a later download.
"""

import uuid  # unguessable job ids
from typing import Optional, Union

from .catalog import SeriesCatalog
from .models import AsyncReportHandle, ReportJob, ReportRequest, SyncReport
from .report_store import ReportJobStore
from .reports import DEFAULT_PREFIX, render_report
from .exceptions import ReportNotFoundError

from loguru import logger


DOWNLOAD_URL_TEMPLATE = '/api/v1/series/_report/{job_id}'


class ReportService:
	"""
	Builds reports for a request.

	The async flag only changes delivery: rendering always happens inside
	generate(), and async callers get a job id to download the result from.
	"""

	def __init__(
		self,
		catalog: SeriesCatalog,
		store: Optional[ReportJobStore] = None,
		prefix: str = DEFAULT_PREFIX,
		download_url_template: str = DOWNLOAD_URL_TEMPLATE,
	):
		self.catalog = catalog  # record-query collaborator
		self.store = store if store is not None else ReportJobStore()  # parked async reports
		self.prefix = prefix  # filename prefix
		self.download_url_template = download_url_template

	def generate(self, request: ReportRequest) -> Union[SyncReport, AsyncReportHandle]:
		"""Filter, render, then return the file (sync) or a job handle (async)."""
		series = self.catalog.search(
			studio_id=request.studio_id,
			min_rating=request.min_rating,
			year=request.year,
			genre=request.genre,
		)
		logger.info(
			f"[Reports] Request format={request.format or 'csv'} async={request.async_mode} "
			f"matched {len(series)} series"
		)
		report = render_report(series, request.format, prefix=self.prefix)

		if not request.async_mode:
			return SyncReport(report=report)

		job_id = str(uuid.uuid4())
		self.store.put(job_id, report.data, report.filename, report.content_type)
		logger.info(f"[Reports] Stored job {job_id} ({report.filename})")
		return AsyncReportHandle(job_id=job_id, download_url=self.download_url_template.format(job_id=job_id))

	def download(self, job_id: str) -> ReportJob:
		"""Fetch a stored report. Downloads never remove it."""
		job = self.store.get(job_id)
		if job is None:
			raise ReportNotFoundError(job_id)
		return job
