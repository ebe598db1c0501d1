"""
Prompt pipeline: turns prompts into finished gallery videos.

One prompt becomes one Veo job plus, unless a title is supplied, one
title request against the text backend.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from gallery.models import VideoArtifact, new_artifact_id, to_data_url
from video.polling import JobPoller

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class BatchFailure:
    prompt: str
    error: Exception


@dataclass
class BatchResult:
    """Outcome of a best-effort batch: successes in prompt order plus per-prompt failures."""
    artifacts: List[VideoArtifact] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)


class PromptPipeline:

    def __init__(self, poller: JobPoller, text_generator):
        self.poller = poller
        self.text_generator = text_generator

    async def create_from_prompt(
        self,
        prompt: str,
        title: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        label: str = "the video",
    ) -> VideoArtifact:
        """
        Generate a single video for `prompt` and wrap it as a new artifact.

        Errors from the poller or the title call propagate unchanged.
        """
        job_id = await self.poller.submit(prompt, count=1)
        payloads = await self.poller.await_completion(job_id)

        if title is None:
            if on_progress:
                on_progress(f"Generating a title for {label}...")
            title = await self.text_generator.generate_title(prompt)

        return VideoArtifact(
            id=new_artifact_id(),
            title=title,
            description=prompt,
            video_url=to_data_url(payloads[0])
        )

    async def create_batch(
        self,
        prompts: List[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """
        Run create_from_prompt for each prompt, one after another.

        A failing prompt is recorded and skipped; the rest still run.
        """
        result = BatchResult()
        total = len(prompts)
        for i, prompt in enumerate(prompts, start=1):
            if on_progress:
                on_progress(f'Generating video {i} of {total}: "{prompt[:50]}..."')
            try:
                artifact = await self.create_from_prompt(
                    prompt, on_progress=on_progress, label=f"video {i}"
                )
            except Exception as e:
                logger.error(f"Batch prompt {i}/{total} failed: {str(e)}", exc_info=True)
                result.failures.append(BatchFailure(prompt=prompt, error=e))
                continue
            result.artifacts.append(artifact)
        return result
