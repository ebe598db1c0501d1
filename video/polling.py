"""
Video job tracking and completion polling.

The registry keeps every in-flight job in memory, handling state
transitions for the providers. JobPoller drives one job from submission
to downloaded payloads.
"""
import asyncio
import base64
import logging
from typing import Dict, List, Optional

import httpx

from core import config
from core.errors import EmptyResult, JobFailed, TransferError
from video.base import VideoJob, VideoProvider

logger = logging.getLogger(__name__)

# In-memory job store, entries are dropped once a job has been awaited
_JOBS: Dict[str, VideoJob] = {}


def create_job(job_id: str, prompt: str, provider: str, count: int = 1) -> VideoJob:
    """
    Create a new job with pending status.

    Args:
        job_id: Unique job identifier
        prompt: The prompt the job was submitted with
        provider: Provider name (e.g., "veo", "mock")
        count: Number of videos requested

    Returns:
        VideoJob: The newly created job
    """
    job = VideoJob(
        job_id=job_id,
        prompt=prompt,
        status="pending",
        provider=provider,
        count=count
    )
    _JOBS[job_id] = job
    return job


def get_job(job_id: str) -> Optional[VideoJob]:
    """Retrieve a job by ID, None if unknown."""
    return _JOBS.get(job_id)


def update_job_status(job_id: str, status: str, result_uris: Optional[List[str]] = None) -> bool:
    """
    Update job status and optionally its result references.
    Handles state transitions: pending → done/failed

    Returns:
        True if update succeeded, False if job not found
    """
    if job_id not in _JOBS:
        return False

    job = _JOBS[job_id]
    job.status = status
    if result_uris is not None:
        job.result_uris = list(result_uris)

    return True


def mark_job_done(job_id: str, result_uris: List[str]) -> bool:
    """Transition job to done with its result references (possibly empty)."""
    return update_job_status(job_id, "done", result_uris)


def mark_job_failed(job_id: str) -> bool:
    """Transition job to failed status."""
    return update_job_status(job_id, "failed")


def discard_job(job_id: str) -> None:
    _JOBS.pop(job_id, None)


class JobPoller:
    """
    Drives a single generation job to completion.

    Polls are strictly sequential per job: the next status check is only
    issued after the previous one returned and the poll interval elapsed.
    Waiting suspends the calling task only.
    """

    def __init__(
        self,
        provider: VideoProvider,
        api_key: Optional[str] = None,
        poll_interval: float = config.POLL_INTERVAL_SECONDS,
        timeout: float = config.DOWNLOAD_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.provider = provider
        self.api_key = api_key
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._transport = transport

    async def submit(self, prompt: str, count: int = 1) -> str:
        job_id = await self.provider.create_video(prompt, count=count)
        logger.info(f"Submitted video job {job_id} ({count} video(s)) for prompt: {prompt[:50]}...")
        return job_id

    async def await_completion(self, job_id: str) -> List[str]:
        """
        Wait until the job leaves pending, then download its videos.

        Args:
            job_id: Handle returned by submit()

        Returns:
            Base64-encoded video payloads, one per generated video

        Raises:
            JobFailed: The backend reported the job as failed
            EmptyResult: The job completed with zero videos
            TransferError: Any payload could not be downloaded
        """
        try:
            job = await self.provider.check_status(job_id)
            while job.status == "pending":
                await asyncio.sleep(self.poll_interval)
                logger.debug(f"...Generating... (job {job_id})")
                job = await self.provider.check_status(job_id)

            if job.status == "failed":
                raise JobFailed(f"Video job {job_id} failed")
            if not job.result_uris:
                raise EmptyResult("No videos generated")

            logger.info(f"Video job {job_id} finished: {job.to_dict()}")
            return await self._download_all(job.result_uris)
        finally:
            discard_job(job_id)

    async def _download_all(self, uris: List[str]) -> List[str]:
        params = {"key": self.api_key} if self.api_key else None
        payloads = []
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self._transport
        ) as client:
            for uri in uris:
                try:
                    res = await client.get(uri, params=params)
                except httpx.HTTPError as e:
                    raise TransferError(f"Failed to fetch video: {e}") from e

                if not res.is_success:
                    raise TransferError(
                        f"Failed to fetch video: {res.status_code} {res.reason_phrase}",
                        status_code=res.status_code
                    )
                payloads.append(base64.b64encode(res.content).decode("ascii"))
        return payloads
