"""
Video provider and poller factory.

Centralizes provider creation so the gallery never needs to know
which backend it talks to.
"""
import logging
from core import config
from video.base import VideoProvider
from video.mock import MockProvider
from video.polling import JobPoller

logger = logging.getLogger(__name__)


def get_video_provider(provider_name: str = config.VIDEO_PROVIDER) -> VideoProvider:
    """
    Get video provider based on VIDEO_PROVIDER env var.

    Defaults to 'veo'. Veo needs GEMINI_API_KEY; without it the mock
    provider is used so development works offline.

    Returns:
        VideoProvider: The configured video provider instance
    """
    provider_name = provider_name.lower()

    if provider_name == "mock":
        return MockProvider()
    if provider_name != "veo":
        logger.warning(f"Unknown provider '{provider_name}', defaulting to Veo")

    if not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY not set - using mock video provider")
        return MockProvider()

    from video.veo import VeoProvider
    return VeoProvider()


def get_job_poller(provider: VideoProvider = None) -> JobPoller:
    """Build a JobPoller for the configured provider and credential."""
    return JobPoller(provider or get_video_provider(), api_key=config.GEMINI_API_KEY)
