import asyncio
import os
import uuid

# app.main builds a gallery at import time; keep it offline and in memory
os.environ["VIDEO_PROVIDER"] = "mock"
os.environ["GALLERY_DB_URL"] = "sqlite://"

import httpx
import pytest

from gallery.daily import DailyRefreshController
from gallery.pipeline import PromptPipeline
from gallery.state import GalleryStateMachine
from gallery.store import GalleryStore
from video.base import VideoProvider, VideoJob
from video.polling import JobPoller, create_job, get_job, mark_job_done, mark_job_failed

VIDEO_BYTES = b"fake-mp4-bytes"


def run(coro):
    return asyncio.run(coro)


class FakeProvider(VideoProvider):
    """Completes jobs after `pending_checks` polls; outcome chosen by prompt."""

    def __init__(self, pending_checks=0, fail_prompts=(), empty_prompts=(), reject_prompts=()):
        self.provider_name = "fake"
        self.pending_checks = pending_checks
        self.fail_prompts = set(fail_prompts)
        self.empty_prompts = set(empty_prompts)
        self.reject_prompts = set(reject_prompts)
        self.submitted = []
        self.checks = 0
        self._remaining = {}

    async def create_video(self, prompt: str, count: int = 1) -> str:
        if prompt in self.reject_prompts:
            raise RuntimeError("backend rejected the prompt")
        job_id = str(uuid.uuid4())
        create_job(job_id, prompt=prompt, provider=self.provider_name, count=count)
        self.submitted.append(prompt)
        self._remaining[job_id] = self.pending_checks
        return job_id

    async def check_status(self, job_id: str) -> VideoJob:
        self.checks += 1
        job = get_job(job_id)
        if not job:
            raise ValueError(f"Job {job_id} not found")
        if self._remaining[job_id] > 0:
            self._remaining[job_id] -= 1
            return job
        if job.prompt in self.fail_prompts:
            mark_job_failed(job_id)
        elif job.prompt in self.empty_prompts:
            mark_job_done(job_id, [])
        else:
            mark_job_done(
                job_id,
                [f"https://videos.example/{job_id}/{n}.mp4?alt=media" for n in range(job.count)]
            )
        return job


class FakeTextGenerator:
    def __init__(self, prompts=None, prompt_error=None):
        self.prompts = ["a fox in snow", "a lighthouse in a storm", "a koi pond at dawn"] if prompts is None else prompts
        self.prompt_error = prompt_error
        self.title_calls = []
        self.prompt_calls = 0

    async def generate_title(self, prompt: str) -> str:
        self.title_calls.append(prompt)
        return f"Title for {prompt}"

    async def generate_prompts(self, count: int = 3):
        self.prompt_calls += 1
        if self.prompt_error:
            raise self.prompt_error
        return list(self.prompts[:count])


class RecordingTransport(httpx.MockTransport):
    """Serves VIDEO_BYTES for every request, or `status` when given."""

    def __init__(self, status=200, error=None):
        self.requests = []
        self.status = status
        self.error = error
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            raise self.error
        if self.status != 200:
            return httpx.Response(self.status)
        return httpx.Response(200, content=VIDEO_BYTES)


@pytest.fixture
def store(tmp_path):
    return GalleryStore(f"sqlite:///{tmp_path / 'gallery.db'}")


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def poller(provider, transport):
    return JobPoller(provider, api_key="secret", poll_interval=0, transport=transport)


@pytest.fixture
def pipeline(poller, text_generator):
    return PromptPipeline(poller, text_generator)


@pytest.fixture
def gallery(store, pipeline, text_generator):
    daily = DailyRefreshController(pipeline, text_generator)
    return GalleryStateMachine(store, pipeline, daily)
