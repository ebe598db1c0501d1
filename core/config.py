"""
Runtime configuration.

Values come from the environment, optionally seeded from a .env file
at the repository root.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

# Veo / Gemini credential, also used when downloading finished videos
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

VIDEO_PROVIDER = os.getenv("VIDEO_PROVIDER", "veo")
VEO_MODEL_NAME = os.getenv("VEO_MODEL_NAME", "veo-3.0-generate-preview")
VIDEO_ASPECT_RATIO = os.getenv("VIDEO_ASPECT_RATIO", "16:9")

# Seconds between status checks of a running generation job
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "10"))
DOWNLOAD_TIMEOUT_SECONDS = float(os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "120"))

# Text generation goes through an OpenAI-compatible endpoint
TEXT_API_KEY = os.getenv("TEXT_API_KEY") or GEMINI_API_KEY
TEXT_BASE_URL = os.getenv(
    "TEXT_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/"
)
TITLE_MODEL_NAME = os.getenv("TITLE_MODEL_NAME", "gemini-2.5-flash")
DAILY_PROMPT_COUNT = int(os.getenv("DAILY_PROMPT_COUNT", "3"))

GALLERY_DB_URL = os.getenv("GALLERY_DB_URL", "sqlite:///./gallery.db")
