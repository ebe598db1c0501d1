"""
Gallery state machine.

Single source of truth for what the presentation layer shows and the
only writer of the gallery store after startup. Exactly one state is
active at a time; failed generations are surfaced as a dismissible
error list alongside the state.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple, Union

from core.errors import InvalidTransition, PersistenceWriteError
from gallery.daily import DailyRefreshController, is_due
from gallery.models import VideoArtifact, new_video_draft, remix_title
from gallery.pipeline import PromptPipeline
from gallery.store import GalleryStore

logger = logging.getLogger(__name__)

DAILY_FAILURE_MESSAGE = [
    "Failed to generate daily videos.",
    "Please check your API key and try again later.",
]
GENERATION_FAILURE_MESSAGE = [
    "Veo is only available on the Paid Tier.",
    "Please select your Cloud Project to get started.",
]


@dataclass
class Loading:
    name = "loading"

    def to_dict(self) -> dict:
        return {"state": self.name}


@dataclass
class DailyRefreshing:
    status: str
    name = "daily_refreshing"

    def to_dict(self) -> dict:
        return {"state": self.name, "status": self.status}


@dataclass
class Browsing:
    videos: List[VideoArtifact]
    name = "browsing"

    def to_dict(self) -> dict:
        return {"state": self.name, "videos": [v.model_dump() for v in self.videos]}


@dataclass
class Playing:
    video: VideoArtifact
    name = "playing"

    def to_dict(self) -> dict:
        return {"state": self.name, "video": self.video.model_dump()}


@dataclass
class Editing:
    draft: VideoArtifact
    previous: Optional[VideoArtifact] = None  # video being played before editing
    name = "editing"

    def to_dict(self) -> dict:
        return {
            "state": self.name,
            "draft": self.draft.model_dump(),
            "is_new": self.draft.is_draft
        }


@dataclass
class Saving:
    name = "saving"

    def to_dict(self) -> dict:
        return {"state": self.name}


@dataclass
class Error:
    messages: List[str] = field(default_factory=list)
    name = "error"

    def to_dict(self) -> dict:
        return {"state": self.name, "messages": list(self.messages)}


GalleryState = Union[Loading, DailyRefreshing, Browsing, Playing, Editing, Saving, Error]


class GalleryStateMachine:
    """
    Owns the video collection and drives every user-visible transition.

    Actions are only accepted from specific states, so at most one
    daily batch or one create/remix is in flight at a time.
    """

    def __init__(
        self,
        store: GalleryStore,
        pipeline: PromptPipeline,
        daily: DailyRefreshController,
    ):
        self.store = store
        self.pipeline = pipeline
        self.daily = daily
        self.videos: List[VideoArtifact] = []
        self.errors: Optional[List[str]] = None
        self.state: GalleryState = Loading()
        self.history: List[str] = [self.state.name]

    # ================================
    # HELPERS
    # ================================

    def _transition(self, state: GalleryState) -> None:
        if state.name != self.state.name:
            logger.info(f"Gallery: {self.state.name} -> {state.name}")
            self.history.append(state.name)
        self.state = state

    def _require(self, action: str, *allowed) -> None:
        if not isinstance(self.state, allowed):
            raise InvalidTransition(action, self.state.name)

    def _browse(self) -> None:
        self._transition(Browsing(list(self.videos)))

    def _persist(self, marker: Optional[datetime] = None) -> None:
        # In-memory state stays authoritative when the store is unavailable
        try:
            if marker is None:
                self.store.save(self.videos)
            else:
                self.store.save_refresh(self.videos, marker)
        except PersistenceWriteError:
            logger.warning("Failed to persist gallery", exc_info=True)

    def find_video(self, video_id: str) -> VideoArtifact:
        for video in self.videos:
            if video.id == video_id:
                return video
        raise KeyError(video_id)

    def to_dict(self) -> dict:
        data = self.state.to_dict()
        data["errors"] = list(self.errors) if self.errors else None
        return data

    # ================================
    # STARTUP
    # ================================

    async def initialize(self, now: Optional[datetime] = None) -> None:
        """Load the store and run today's batch when the marker is stale."""
        self._require("initialize", Loading)
        now = now or datetime.now().astimezone()

        videos, marker = self.store.load()
        self.videos = videos

        if not is_due(marker, now):
            self._browse()
            return

        self._transition(DailyRefreshing("Dreaming up new video ideas..."))
        new_videos = await self.daily.run_daily_batch(on_status=self._set_daily_status)

        if new_videos:
            self.videos = new_videos + self.videos
            self._persist(marker=now)
        else:
            self.errors = list(DAILY_FAILURE_MESSAGE)
        self._browse()

    def _set_daily_status(self, status: str) -> None:
        if isinstance(self.state, DailyRefreshing):
            self.state.status = status

    # ================================
    # USER ACTIONS
    # ================================

    def select(self, video_id: str) -> None:
        self._require("play a video", Browsing)
        self._transition(Playing(self.find_video(video_id)))

    def close(self) -> None:
        self._require("close the player", Playing)
        self._browse()

    def start_create(self) -> None:
        self._require("create a video", Browsing, Playing)
        previous = self.state.video if isinstance(self.state, Playing) else None
        self._transition(Editing(new_video_draft(), previous=previous))

    def start_remix(self, video_id: Optional[str] = None) -> None:
        self._require("remix a video", Browsing, Playing)
        if video_id is None:
            if not isinstance(self.state, Playing):
                raise InvalidTransition("remix without a video", self.state.name)
            source = self.state.video
        else:
            source = self.find_video(video_id)
        previous = self.state.video if isinstance(self.state, Playing) else None
        self._transition(Editing(source.model_copy(), previous=previous))

    def cancel_edit(self) -> None:
        self._require("cancel editing", Editing)
        previous = self.state.previous
        if previous is not None:
            self._transition(Playing(previous))
        else:
            self._browse()

    def begin_save(self, description: str) -> Tuple[str, Optional[str]]:
        """
        Accept the edited prompt and enter Saving.

        Returns the prompt and the title to use (None asks for a generated
        one). Runs synchronously so a second confirm is rejected at once.
        """
        self._require("generate a video", Editing)
        prompt = description.strip()
        if not prompt:
            raise ValueError("Prompt cannot be empty")

        draft = self.state.draft
        title = None if draft.is_draft else remix_title(draft.title)

        self.errors = None
        self._transition(Saving())
        return prompt, title

    async def generate(self, prompt: str, title: Optional[str] = None) -> None:
        """
        Success prepends the new video, persists, and plays it. Failure
        surfaces an error and returns to browsing with the collection
        untouched.
        """
        self._require("finish generating", Saving)
        logger.info(f"Generating video... {prompt[:50]}")

        try:
            video = await self.pipeline.create_from_prompt(prompt, title=title)
        except Exception:
            logger.error("Video generation failed", exc_info=True)
            self.errors = list(GENERATION_FAILURE_MESSAGE)
            self._browse()
            return

        self.videos = [video] + self.videos
        self._persist()
        self._transition(Playing(video))

    async def confirm_edit(self, description: str) -> None:
        """Generate a video from the edited prompt."""
        prompt, title = self.begin_save(description)
        await self.generate(prompt, title)

    def fail(self, messages: List[str]) -> None:
        """Enter the error state from anywhere."""
        self._transition(Error(list(messages)))

    def dismiss_error(self) -> None:
        self.errors = None
        if isinstance(self.state, Error):
            self._browse()
