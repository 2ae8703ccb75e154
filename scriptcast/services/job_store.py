"""Job tracking for background generation runs."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import Any, Optional

from scriptcast.models.enums import JobStatus
from scriptcast.models.events import (
    AudioChunkEvent,
    ImageChunkEvent,
    ProgressEvent,
    SectionEvent,
)

logger = logging.getLogger(__name__)


@dataclass
class GenerationJob:
    """Represents one script, audio, image or production run."""
    job_id: str
    kind: str
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    result: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    events: list[dict[str, Any]] = field(default_factory=list)
    section_count: Optional[int] = None  # Denominator for script progress
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "job_id": self.job_id,
            "kind": self.kind,
            "status": self.status.value,
            "progress": self.progress,
            "result": self.result,
            "error_message": self.error_message,
            "events": list(self.events),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class JobStore:
    """
    In-memory job tracking.

    Can be swapped to Redis for production by implementing
    the same interface with Redis backend.
    """

    def __init__(self, max_events: int = 500):
        self._jobs: dict[str, GenerationJob] = {}
        self._max_events = max_events
        self._lock = asyncio.Lock()

    async def create_job(
        self,
        job_id: str,
        kind: str,
        section_count: Optional[int] = None,
    ) -> GenerationJob:
        """Create a new job."""
        async with self._lock:
            job = GenerationJob(job_id=job_id, kind=kind, section_count=section_count)
            self._jobs[job_id] = job
            logger.info(f"Created {kind} job {job_id}")
            return job

    async def get_job(self, job_id: str) -> Optional[GenerationJob]:
        """Get job by ID."""
        return self._jobs.get(job_id)

    async def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        progress: Optional[float] = None,
        result: Optional[dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> Optional[GenerationJob]:
        """Update job status and details."""
        async with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return None

            job.updated_at = datetime.now(timezone.utc)

            if status is not None:
                job.status = status
                if status == JobStatus.COMPLETED:
                    job.completed_at = job.updated_at
                    job.progress = 1.0

            if progress is not None:
                job.progress = progress
            if result is not None:
                job.result = result
            if error_message is not None:
                job.error_message = error_message

            logger.debug(f"Updated job {job_id}: status={job.status.value}, progress={job.progress}")
            return job

    async def record_event(self, job_id: str, event: ProgressEvent) -> None:
        """Append a progress event to the job and advance its progress."""
        async with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return

            job.events.append(event.model_dump(mode="json"))
            if len(job.events) > self._max_events:
                del job.events[0]
            job.updated_at = datetime.now(timezone.utc)

            progress = _event_progress(event, job.section_count)
            if progress is not None:
                job.progress = max(job.progress, min(progress, 1.0))

    async def delete_job(self, job_id: str) -> bool:
        """Delete a job."""
        async with self._lock:
            if job_id in self._jobs:
                del self._jobs[job_id]
                return True
            return False

    async def cleanup_old_jobs(self, max_age_hours: int = 24) -> int:
        """Remove jobs older than max_age_hours."""
        cutoff = datetime.now(timezone.utc) - timedelta(hours=max_age_hours)
        async with self._lock:
            old_jobs = [
                jid for jid, job in self._jobs.items()
                if job.created_at < cutoff
            ]
            for jid in old_jobs:
                del self._jobs[jid]
            if old_jobs:
                logger.info(f"Cleaned up {len(old_jobs)} old jobs")
            return len(old_jobs)


def _event_progress(event: ProgressEvent, section_count: Optional[int]) -> Optional[float]:
    if isinstance(event, SectionEvent) and section_count:
        return event.section_number / section_count
    if isinstance(event, AudioChunkEvent) and event.total_chunks:
        return event.chunk_index / event.total_chunks
    if isinstance(event, ImageChunkEvent) and event.total:
        return event.current / event.total
    return None


# Global singleton instance
_job_store: Optional[JobStore] = None


def get_job_store() -> JobStore:
    """Get or create the global job store instance."""
    global _job_store
    if _job_store is None:
        _job_store = JobStore()
    return _job_store
