"""
Mock video provider for development and keyless runs.

Simulates async video generation that completes on the first status
check, pointing every result at a public sample clip.
"""
import uuid
from video.base import VideoProvider, VideoJob
from video.polling import create_job, get_job, mark_job_done

MOCK_VIDEO_URL = "https://sample-videos.com/video321/mp4/720/big_buck_bunny_720p_1mb.mp4"


class MockProvider(VideoProvider):
    """
    Mock video provider.

    Jobs go pending → done after the first check_status call, with
    one sample URL per requested video.
    """

    def __init__(self, video_url: str = MOCK_VIDEO_URL):
        self.provider_name = "mock"
        self.video_url = video_url

    async def create_video(self, prompt: str, count: int = 1) -> str:
        job_id = str(uuid.uuid4())
        create_job(job_id, prompt=prompt, provider=self.provider_name, count=count)
        return job_id

    async def check_status(self, job_id: str) -> VideoJob:
        job = get_job(job_id)
        if not job:
            raise ValueError(f"Job {job_id} not found")

        if job.status == "pending":
            mark_job_done(job_id, [self.video_url] * job.count)
        return job
