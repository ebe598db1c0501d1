from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

@dataclass
class VideoJob:
    """
    Handle to one in-flight generation request.
    All providers must return jobs matching this structure.
    Jobs live only while they are being polled and are never persisted.
    """
    job_id: str
    prompt: str
    status: str  # "pending" | "done" | "failed"
    provider: str
    count: int = 1
    result_uris: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert VideoJob to a dictionary for log lines."""
        return {
            "status": self.status,
            "result_uris": list(self.result_uris)
        }


class VideoProvider(ABC):
    """
    Abstract interface for video generation backends.
    All providers must implement create_video and check_status.
    """

    @abstractmethod
    async def create_video(self, prompt: str, count: int = 1) -> str:
        """
        Submit a new video generation job.

        Args:
            prompt: The video generation prompt
            count: Number of videos requested

        Returns:
            job_id: Unique identifier for the job

        Raises:
            Exception: If job submission fails
        """
        pass

    @abstractmethod
    async def check_status(self, job_id: str) -> VideoJob:
        """
        Check the status of a video generation job.

        Args:
            job_id: The job identifier

        Returns:
            VideoJob: The current job state; result_uris is filled once done

        Raises:
            ValueError: If the job doesn't exist
        """
        pass
