"""
In-memory store for rendered reports awaiting download.
"""

import threading  # guards writes
import time  # monotonic clock for optional expiry
from collections import OrderedDict  # insertion order for optional eviction
from typing import Optional, Tuple

from .models import ReportJob

from loguru import logger


class ReportJobStore:
	"""
	Holds rendered reports keyed by job id.

	Jobs are never consumed by reading: every get() returns the same job.
	By default nothing is evicted and jobs live as long as the process.
	`max_jobs` (drop the oldest job on overflow) and `ttl_seconds` (treat
	older jobs as gone) are opt-in retention limits; 0 or None disables them.
	"""

	def __init__(self, max_jobs: Optional[int] = None, ttl_seconds: Optional[float] = None, clock=time.monotonic):
		self.max_jobs = max_jobs or None
		self.ttl_seconds = ttl_seconds or None
		self._jobs: 'OrderedDict[str, Tuple[ReportJob, float]]' = OrderedDict()
		self._lock = threading.Lock()
		self._clock = clock  # seconds, monotonic

	def put(self, job_id: str, data: bytes, filename: str, content_type: str) -> ReportJob:
		"""Store a rendered report under `job_id`, replacing any previous entry."""
		job = ReportJob(job_id=job_id, data=data, filename=filename, content_type=content_type)
		evicted = []  # logged after the lock is released
		with self._lock:
			self._jobs[job_id] = (job, self._clock())
			self._jobs.move_to_end(job_id)
			if self.max_jobs is not None:
				while len(self._jobs) > self.max_jobs:
					evicted.append(self._jobs.popitem(last=False)[0])
		for old_id in evicted:
			logger.info(f"[ReportStore] Evicted job {old_id} (max_jobs={self.max_jobs})")
		logger.debug(f"[ReportStore] Stored job {job_id} ({len(data)} bytes, {filename})")
		return job

	def get(self, job_id: str) -> Optional[ReportJob]:
		"""Return the job stored under `job_id`, or None if unknown (or expired)."""
		with self._lock:
			entry = self._jobs.get(job_id)
			if entry is None:
				return None
			job, stored_at = entry
			expired = self.ttl_seconds is not None and self._clock() - stored_at > self.ttl_seconds
			if expired:
				del self._jobs[job_id]
		if expired:
			logger.info(f"[ReportStore] Job {job_id} expired after {self.ttl_seconds}s")
			return None
		return job

	def __contains__(self, job_id: str) -> bool:
		return self.get(job_id) is not None

	def __len__(self) -> int:
		with self._lock:
			return len(self._jobs)
