"""
Veo video generation provider implementation.

Submits long-running generate_videos operations through google-genai
and refreshes them on every status check.
"""
import logging
import uuid
from typing import Any, Dict, Optional
from urllib.parse import unquote

from google import genai
from google.genai import types

from core import config
from video.base import VideoProvider, VideoJob
from video.polling import create_job, discard_job, get_job, mark_job_done, mark_job_failed

logger = logging.getLogger(__name__)


class VeoProvider(VideoProvider):
    """
    Veo provider backed by the google-genai async client.

    The SDK operation object is kept next to our job so that each
    check_status call can refresh it.
    """

    def __init__(self, client: Optional[Any] = None, api_key: Optional[str] = None):
        self.provider_name = "veo"
        self.client = client or genai.Client(api_key=api_key or config.GEMINI_API_KEY)
        self._operations: Dict[str, Any] = {}

    async def create_video(self, prompt: str, count: int = 1) -> str:
        job_id = str(uuid.uuid4())
        create_job(job_id, prompt=prompt, provider=self.provider_name, count=count)

        try:
            operation = await self.client.aio.models.generate_videos(
                model=config.VEO_MODEL_NAME,
                prompt=prompt,
                config=types.GenerateVideosConfig(
                    number_of_videos=count,
                    aspect_ratio=config.VIDEO_ASPECT_RATIO,
                ),
            )
        except Exception as e:
            logger.error(f"Failed to start Veo job {job_id}: {str(e)}", exc_info=True)
            discard_job(job_id)
            raise

        self._operations[job_id] = operation
        logger.info(f"Created Veo job {job_id} (operation: {getattr(operation, 'name', None)})")
        return job_id

    async def check_status(self, job_id: str) -> VideoJob:
        job = get_job(job_id)
        if not job:
            raise ValueError(f"Job {job_id} not found")

        if job.status != "pending":
            self._operations.pop(job_id, None)
            return job

        operation = await self.client.aio.operations.get(self._operations[job_id])
        self._operations[job_id] = operation

        if not operation.done:
            return job

        self._operations.pop(job_id, None)
        if operation.error:
            logger.error(f"Veo job {job_id} failed: {operation.error}")
            mark_job_failed(job_id)
            return job

        # A finished operation without a response means nothing was generated
        generated = []
        if operation.response is not None:
            generated = operation.response.generated_videos or []
        uris = [unquote(v.video.uri) for v in generated if v.video and v.video.uri]
        mark_job_done(job_id, uris)
        return job
