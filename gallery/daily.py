"""
Daily refresh: decides whether today's gallery still needs generating
and, if so, produces a fresh batch of videos.
"""
import logging
from datetime import datetime
from typing import List, Optional

from core import config
from gallery.models import VideoArtifact
from gallery.pipeline import ProgressCallback, PromptPipeline

logger = logging.getLogger(__name__)


def local_date(moment: datetime):
    """Calendar date of `moment` in local time; naive values are taken as local."""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


def is_due(marker: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    True when no refresh has happened yet or the last one was on a
    different local calendar day than `now`.
    """
    if marker is None:
        return True
    now = now or datetime.now().astimezone()
    return local_date(marker) != local_date(now)


class DailyRefreshController:

    def __init__(self, pipeline: PromptPipeline, text_generator, prompt_count: int = config.DAILY_PROMPT_COUNT):
        self.pipeline = pipeline
        self.text_generator = text_generator
        self.prompt_count = prompt_count

    async def run_daily_batch(self, on_status: Optional[ProgressCallback] = None) -> List[VideoArtifact]:
        """
        Generate today's videos.

        Never raises: any failure (including no usable prompts) yields an
        empty list so the caller keeps showing what it already has.
        """
        try:
            if on_status:
                on_status("Dreaming up new video ideas...")
            prompts = await self.text_generator.generate_prompts(self.prompt_count)
            result = await self.pipeline.create_batch(prompts, on_progress=on_status)
        except Exception as e:
            logger.error(f"Daily generation failed: {str(e)}", exc_info=True)
            return []

        if result.failures:
            logger.warning(
                f"Daily batch finished with {len(result.artifacts)} of {len(prompts)} video(s)"
            )
        return result.artifacts
