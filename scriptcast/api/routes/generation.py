"""Script, audio and image generation endpoints."""

import logging
import uuid
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from scriptcast.exceptions import (
    ExhaustedRetriesError,
    FormatMismatchError,
    GenerationError,
    QuotaExceededError,
    RemoteServiceError,
)
from scriptcast.models import (
    AudioRequest,
    GenerationResponse,
    ImageRequest,
    JobStatus,
    JobStatusResponse,
    ProductionRequest,
    ScriptRequest,
)
from scriptcast.models.events import ProgressEvent
from scriptcast.services import GenerationOrchestrator
from scriptcast.services.job_store import JobStore, get_job_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Generation"])

# A run takes a progress listener and returns something with to_dict()
RunFactory = Callable[[Callable[[ProgressEvent], Awaitable[None]]], Awaitable[Any]]

# Singleton orchestrator instance
_orchestrator: Optional[GenerationOrchestrator] = None


def get_orchestrator() -> GenerationOrchestrator:
    """Get or create orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = GenerationOrchestrator()
    return _orchestrator


def error_status_code(exc: GenerationError) -> int:
    """Map a generation error (or the error it wraps) to an HTTP status code."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, QuotaExceededError):
            return 429
        if isinstance(current, FormatMismatchError):
            return 422
        if isinstance(current, RemoteServiceError):
            return 502
        if isinstance(current, ExhaustedRetriesError):
            current = current.last_error
        elif isinstance(current, GenerationError):
            current = current.cause
        else:
            current = None
    return 500


async def _execute(
    kind: str,
    run: RunFactory,
    sync: bool,
    background_tasks: BackgroundTasks,
    job_store: JobStore,
    section_count: Optional[int] = None,
) -> GenerationResponse:
    job_id = f"{kind}_{uuid.uuid4().hex[:12]}"
    job = await job_store.create_job(job_id, kind, section_count=section_count)

    async def listener(event: ProgressEvent) -> None:
        await job_store.record_event(job_id, event)

    if not sync:
        background_tasks.add_task(_background_generate, job_store, job_id, run, listener)
        return GenerationResponse(
            job_id=job_id,
            status=JobStatus.PROCESSING.value,
            created_at=job.created_at.isoformat(),
        )

    await job_store.update_job(job_id, status=JobStatus.PROCESSING)
    try:
        result = await run(listener)
    except GenerationError as e:
        logger.error(f"{kind} generation error: {e}")
        await job_store.update_job(job_id, status=JobStatus.FAILED, error_message=e.message)
        raise HTTPException(
            status_code=error_status_code(e),
            detail={**e.to_dict(), "job_id": job_id},
        )

    payload = result.to_dict()
    await job_store.update_job(job_id, status=JobStatus.COMPLETED, result=payload)
    return GenerationResponse(
        job_id=job_id,
        status=JobStatus.COMPLETED.value,
        result=payload,
        created_at=job.created_at.isoformat(),
    )


async def _background_generate(
    job_store: JobStore,
    job_id: str,
    run: RunFactory,
    listener: Callable[[ProgressEvent], Awaitable[None]],
) -> None:
    """Background task for async generation."""
    await job_store.update_job(job_id, status=JobStatus.PROCESSING)
    try:
        result = await run(listener)
    except GenerationError as e:
        logger.error(f"Background job {job_id} failed: {e}")
        await job_store.update_job(job_id, status=JobStatus.FAILED, error_message=e.message)
        return
    except Exception as e:
        logger.exception(f"Background job {job_id} failed unexpectedly: {e}")
        await job_store.update_job(job_id, status=JobStatus.FAILED, error_message=str(e))
        return

    await job_store.update_job(job_id, status=JobStatus.COMPLETED, result=result.to_dict())
    logger.info(f"Background job {job_id} completed")


@router.post("/script/generate", response_model=GenerationResponse)
async def generate_script(
    request: ScriptRequest,
    background_tasks: BackgroundTasks,
    sync: bool = Query(
        default=True,
        description="If true, wait for completion. If false, return immediately with job_id.",
    ),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    job_store: JobStore = Depends(get_job_store),
) -> GenerationResponse:
    """
    Generate an outline followed by numbered script sections.

    Either `topic` (expanded through the script template) or a complete
    `prompt` is required. Sections are persisted to `script.txt` as they
    arrive, so a failed run still leaves partial output.
    """
    logger.info(f"Script generation request: sync={sync}")
    section_count = request.section_count or orchestrator.settings.script_section_count

    async def run(listener):
        return await orchestrator.generate_script(
            topic=request.topic,
            prompt=request.prompt,
            output_dir=request.output_dir,
            section_count=section_count,
            listener=listener,
        )

    return await _execute("script", run, sync, background_tasks, job_store, section_count=section_count)


@router.post("/audio/generate", response_model=GenerationResponse)
async def generate_audio(
    request: AudioRequest,
    background_tasks: BackgroundTasks,
    sync: bool = Query(default=True),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    job_store: JobStore = Depends(get_job_store),
) -> GenerationResponse:
    """
    Narrate text into a single WAV file.

    The text is split at sentence boundaries; chunks that keep failing are
    skipped and listed in `failed_chunks`.
    """
    logger.info(f"Audio generation request: {len(request.content)} chars, sync={sync}")

    async def run(listener):
        return await orchestrator.generate_audio(
            request.content,
            output_dir=request.output_dir,
            section_index=request.section_index,
            listener=listener,
        )

    return await _execute("audio", run, sync, background_tasks, job_store)


@router.post("/images/generate", response_model=GenerationResponse)
async def generate_images(
    request: ImageRequest,
    background_tasks: BackgroundTasks,
    sync: bool = Query(default=True),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    job_store: JobStore = Depends(get_job_store),
) -> GenerationResponse:
    """Derive image prompts from section text and generate an image batch."""
    logger.info(f"Image generation request: section={request.section_index}, sync={sync}")

    async def run(listener):
        return await orchestrator.generate_images(
            request.content,
            section_index=request.section_index,
            output_dir=request.output_dir,
            listener=listener,
        )

    return await _execute("images", run, sync, background_tasks, job_store)


@router.post("/production/generate", response_model=GenerationResponse)
async def generate_production(
    request: ProductionRequest,
    background_tasks: BackgroundTasks,
    sync: bool = Query(default=False),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    job_store: JobStore = Depends(get_job_store),
) -> GenerationResponse:
    """
    Generate a script, then its audio and per-section images concurrently.

    Runs asynchronously by default; poll `/jobs/{job_id}` for progress.
    """
    logger.info(f"Production request: topic={request.topic!r}, sync={sync}")

    async def run(listener):
        return await orchestrator.produce(request.topic, output_dir=request.output_dir, listener=listener)

    return await _execute("production", run, sync, background_tasks, job_store)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    job_store: JobStore = Depends(get_job_store),
) -> JobStatusResponse:
    """
    Check the status of a generation job.

    **Job States:**
    - `pending`: Job is queued
    - `processing`: Generation in progress
    - `completed`: Result ready
    - `failed`: Generation failed
    """
    job = await job_store.get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": "JobNotFound",
                "message": f"Job {job_id} not found",
            },
        )

    data = job.to_dict()
    return JobStatusResponse(
        job_id=data["job_id"],
        kind=data["kind"],
        status=data["status"],
        progress=data["progress"],
        result=data["result"],
        error_message=data["error_message"],
        events=data["events"],
        created_at=data["created_at"],
        updated_at=data["updated_at"],
    )
