"""
Text generation for titles and daily prompt ideas.

Talks to an OpenAI-compatible endpoint (Gemini's by default) through
the async OpenAI SDK.
"""
import json
import logging
from typing import List, Optional

from openai import AsyncOpenAI

from core import config
from core.errors import PromptGenerationError

logger = logging.getLogger(__name__)

TITLE_PROMPT = (
    "Generate a short, captivating title (5-7 words) for a video based on "
    'this prompt: "{prompt}". Do not include quotes in your response.'
)

DAILY_PROMPTS_PROMPT = (
    "Generate {count} diverse, creative, and visually interesting prompts for "
    "short, 5-10 second videos. The prompts should be suitable for a "
    "text-to-video AI model. Return the response as a JSON object with a "
    'single key "prompts" that holds an array of {count} strings.'
)


def prompts_schema(count: int) -> dict:
    return {
        "name": "video_prompts",
        "schema": {
            "type": "object",
            "properties": {
                "prompts": {
                    "type": "array",
                    "description": f"An array of {count} video prompt strings.",
                    "items": {"type": "string"},
                }
            },
            "required": ["prompts"],
        },
    }


class TextGenerator:
    """Titles and prompt ideas from a chat-completions model."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = config.TITLE_MODEL_NAME,
    ):
        self.client = client or AsyncOpenAI(
            api_key=config.TEXT_API_KEY,
            base_url=config.TEXT_BASE_URL
        )
        self.model = model

    async def _complete(self, content: str, **kwargs) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": content}],
            **kwargs
        )
        return response.choices[0].message.content or ""

    async def generate_title(self, prompt: str) -> str:
        text = await self._complete(TITLE_PROMPT.format(prompt=prompt))
        return text.strip()

    async def generate_prompts(self, count: int = config.DAILY_PROMPT_COUNT) -> List[str]:
        """
        Ask for `count` diverse video prompts as a constrained JSON object.

        Raises:
            PromptGenerationError: Unparseable response or no usable prompts
        """
        text = await self._complete(
            DAILY_PROMPTS_PROMPT.format(count=count),
            response_format={"type": "json_schema", "json_schema": prompts_schema(count)},
        )
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PromptGenerationError("Prompt response was not JSON") from e

        prompts = data.get("prompts") if isinstance(data, dict) else None
        if not isinstance(prompts, list):
            raise PromptGenerationError("Failed to generate prompts.")

        prompts = [p.strip() for p in prompts if isinstance(p, str) and p.strip()]
        if not prompts:
            raise PromptGenerationError("Failed to generate prompts.")
        return prompts


class CannedTextGenerator:
    """
    Offline stand-in used when no text credential is configured.
    Titles are cut from the prompt; prompt ideas come from a fixed list.
    """

    IDEAS = [
        "A paper boat drifting down a rain-soaked city street at dusk, neon reflections rippling.",
        "Slow-motion close-up of a hummingbird sipping from a glowing flower in a misty forest.",
        "Timelapse of a desert sky as the milky way rises over towering sandstone arches.",
    ]

    async def generate_title(self, prompt: str) -> str:
        words = prompt.strip().rstrip(".").split()
        return " ".join(words[:6])

    async def generate_prompts(self, count: int = config.DAILY_PROMPT_COUNT) -> List[str]:
        return self.IDEAS[:count]


def get_text_generator():
    """Return a TextGenerator, or the canned one if TEXT_API_KEY/GEMINI_API_KEY is missing."""
    if not config.TEXT_API_KEY:
        logger.warning("No text generation API key set - using canned titles and prompts")
        return CannedTextGenerator()
    return TextGenerator()
