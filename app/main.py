"""
FastAPI application for the Veo gallery.

Exposes the gallery state for rendering and forwards user actions to
the state machine. Long-running work (daily refresh, generation) runs
in background tasks; clients poll GET /gallery for progress.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Set

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from core.errors import InvalidTransition
from core.llm import get_text_generator
from gallery.daily import DailyRefreshController
from gallery.pipeline import PromptPipeline
from gallery.state import GalleryStateMachine, Loading
from gallery.store import GalleryStore
from video.factory import get_job_poller

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

STARTUP_FAILURE_MESSAGE = ["Failed to load the gallery.", "Please reload the page."]


class RemixRequest(BaseModel):
    video_id: Optional[str] = None


class ConfirmRequest(BaseModel):
    description: str


def build_gallery() -> GalleryStateMachine:
    """Wire the gallery from environment configuration."""
    text_generator = get_text_generator()
    pipeline = PromptPipeline(get_job_poller(), text_generator)
    daily = DailyRefreshController(pipeline, text_generator)
    return GalleryStateMachine(GalleryStore(), pipeline, daily)


def create_app(gallery: Optional[GalleryStateMachine] = None) -> FastAPI:
    gallery = gallery or build_gallery()
    tasks: Set[asyncio.Task] = set()

    def spawn(coro) -> None:
        task = asyncio.create_task(coro)
        tasks.add(task)
        task.add_done_callback(finished)

    def finished(task: asyncio.Task) -> None:
        tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed", exc_info=task.exception())

    async def initialize() -> None:
        try:
            await gallery.initialize()
        except Exception:
            logger.error("Gallery initialization failed", exc_info=True)
            gallery.fail(STARTUP_FAILURE_MESSAGE)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if isinstance(gallery.state, Loading):
            spawn(initialize())
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.gallery = gallery

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def apply(action, *args):
        try:
            action(*args)
        except InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e))
        except KeyError as e:
            raise HTTPException(status_code=404, detail=f"Video {e.args[0]} not found")
        return gallery.to_dict()

    @app.get("/gallery")
    async def get_gallery():
        """
        Current gallery state.

        Response format:
        {
            "state": "loading" | "daily_refreshing" | "browsing" | "playing"
                     | "editing" | "saving" | "error",
            ...state fields...,
            "errors": [string] | null
        }
        """
        return gallery.to_dict()

    @app.post("/gallery/select/{video_id}")
    async def select_video(video_id: str):
        return apply(gallery.select, video_id)

    @app.post("/gallery/close")
    async def close_player():
        return apply(gallery.close)

    @app.post("/gallery/create")
    async def start_create():
        return apply(gallery.start_create)

    @app.post("/gallery/remix")
    async def start_remix(req: RemixRequest):
        return apply(gallery.start_remix, req.video_id)

    @app.post("/gallery/cancel")
    async def cancel_edit():
        return apply(gallery.cancel_edit)

    @app.post("/gallery/confirm", status_code=202)
    async def confirm_edit(req: ConfirmRequest):
        """Start generating from the edited prompt; poll GET /gallery for the result."""
        try:
            prompt, title = gallery.begin_save(req.description)
        except InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        spawn(gallery.generate(prompt, title))
        return gallery.to_dict()

    @app.post("/gallery/dismiss")
    async def dismiss_error():
        return apply(gallery.dismiss_error)

    return app


app = create_app()
