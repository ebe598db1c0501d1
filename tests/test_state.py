import asyncio
import json
from datetime import datetime, timedelta

import pytest

from conftest import FakeProvider, FakeTextGenerator, RecordingTransport, run
from core.errors import InvalidTransition, PersistenceWriteError
from gallery.daily import DailyRefreshController
from gallery.models import NEW_VIDEO_ID, VideoArtifact
from gallery.pipeline import PromptPipeline
from gallery.state import (
    DAILY_FAILURE_MESSAGE,
    GENERATION_FAILURE_MESSAGE,
    Browsing,
    DailyRefreshing,
    Editing,
    Error,
    GalleryStateMachine,
    Playing,
    Saving,
)
from gallery.store import VIDEOS_KEY
from video.polling import JobPoller

NOW = datetime.now().astimezone()


def make_video(n):
    return VideoArtifact(id=f"old-{n}", title=f"Old {n}", description=f"old prompt {n}", video_url=f"https://videos.example/{n}.mp4")


OLD = [make_video(1), make_video(2)]


class GatedProvider(FakeProvider):
    """Holds every status check until `release` is set."""

    def __init__(self):
        super().__init__()
        self.release = None
        self.waiting = False

    async def check_status(self, job_id):
        self.waiting = True
        await self.release.wait()
        return await super().check_status(job_id)


def make_gallery(store, provider=None, text_generator=None, transport=None):
    provider = provider or FakeProvider()
    text_generator = text_generator or FakeTextGenerator()
    poller = JobPoller(provider, poll_interval=0, transport=transport or RecordingTransport())
    pipeline = PromptPipeline(poller, text_generator)
    daily = DailyRefreshController(pipeline, text_generator)
    return GalleryStateMachine(store, pipeline, daily)


def seed(store, marker):
    store.save(OLD)
    store.save_marker(marker)


def browsing_gallery(store, **kwargs):
    seed(store, NOW)
    gallery = make_gallery(store, **kwargs)
    run(gallery.initialize(now=NOW))
    return gallery


def test_stale_marker_runs_daily_batch(store):
    seed(store, NOW - timedelta(days=1))
    text_generator = FakeTextGenerator(prompts=["new1", "new2", "new3"])
    gallery = make_gallery(store, provider=FakeProvider(fail_prompts={"new3"}), text_generator=text_generator)

    run(gallery.initialize(now=NOW))

    assert gallery.history == ["loading", "daily_refreshing", "browsing"]
    assert isinstance(gallery.state, Browsing)
    assert [v.description for v in gallery.state.videos] == ["new1", "new2", "old prompt 1", "old prompt 2"]
    assert gallery.errors is None

    videos, marker = store.load()
    assert [v.description for v in videos] == ["new1", "new2", "old prompt 1", "old prompt 2"]
    assert marker == NOW


def test_fresh_marker_skips_generation(store):
    seed(store, NOW - timedelta(minutes=1))
    provider = FakeProvider()
    text_generator = FakeTextGenerator()
    gallery = make_gallery(store, provider=provider, text_generator=text_generator)

    run(gallery.initialize(now=NOW))

    assert gallery.history == ["loading", "browsing"]
    assert gallery.state.videos == OLD
    assert provider.submitted == []
    assert text_generator.prompt_calls == 0


def test_failed_daily_batch_keeps_old_videos_and_marker(store):
    marker = NOW - timedelta(days=2)
    seed(store, marker)
    gallery = make_gallery(store, transport=RecordingTransport(status=500))

    run(gallery.initialize(now=NOW))

    assert gallery.history == ["loading", "daily_refreshing", "browsing"]
    assert gallery.state.videos == OLD
    assert gallery.errors == DAILY_FAILURE_MESSAGE
    assert store.load() == (OLD, marker)


def test_first_run_refreshes_on_top_of_defaults(store):
    gallery = make_gallery(store, text_generator=FakeTextGenerator(prompts=["only"]))

    run(gallery.initialize(now=NOW))

    assert gallery.state.videos[0].description == "only"
    assert len(gallery.state.videos) > 1


def test_daily_status_follows_progress(store):
    gallery = make_gallery(store)
    seen = []
    original = gallery._set_daily_status

    def spy(status):
        original(status)
        seen.append(gallery.state.status if isinstance(gallery.state, DailyRefreshing) else None)

    gallery._set_daily_status = spy
    run(gallery.initialize(now=NOW))

    assert seen[0] == "Dreaming up new video ideas..."
    assert seen[1].startswith("Generating video 1 of 3")


def test_select_and_close(store):
    gallery = browsing_gallery(store)

    gallery.select("old-2")
    assert isinstance(gallery.state, Playing)
    assert gallery.state.video == OLD[1]

    gallery.close()
    assert isinstance(gallery.state, Browsing)


def test_select_unknown_video(store):
    gallery = browsing_gallery(store)

    with pytest.raises(KeyError):
        gallery.select("missing")


def test_create_flow_prepends_and_plays(store):
    text_generator = FakeTextGenerator()
    gallery = browsing_gallery(store, text_generator=text_generator)

    gallery.start_create()
    assert isinstance(gallery.state, Editing)
    assert gallery.state.draft.id == NEW_VIDEO_ID

    run(gallery.confirm_edit("  a heron on a misty lake  "))

    assert gallery.history[-3:] == ["editing", "saving", "playing"]
    new_video = gallery.state.video
    assert new_video.description == "a heron on a misty lake"
    assert new_video.title == "Title for a heron on a misty lake"

    videos, _ = store.load()
    assert videos[0] == new_video
    assert videos[1:] == OLD


def test_remix_uses_remix_title(store):
    text_generator = FakeTextGenerator()
    gallery = browsing_gallery(store, text_generator=text_generator)

    gallery.select("old-1")
    gallery.start_remix()
    assert gallery.state.draft.description == "old prompt 1"

    run(gallery.confirm_edit("old prompt 1, but at night"))

    assert gallery.state.video.title == 'Remix of "Old 1"'
    assert text_generator.title_calls == []


def test_failed_generation_returns_to_browsing(store):
    seed(store, NOW)
    gallery = make_gallery(store, transport=RecordingTransport(status=404))
    run(gallery.initialize(now=NOW))

    gallery.start_create()
    run(gallery.confirm_edit("a heron on a misty lake"))

    assert gallery.history[-3:] == ["editing", "saving", "browsing"]
    assert gallery.errors == GENERATION_FAILURE_MESSAGE
    assert gallery.state.videos == OLD
    assert store.load()[0] == OLD

    gallery.dismiss_error()
    assert gallery.errors is None
    assert isinstance(gallery.state, Browsing)


def test_cancel_returns_to_previous_view(store):
    gallery = browsing_gallery(store)

    gallery.start_create()
    gallery.cancel_edit()
    assert isinstance(gallery.state, Browsing)

    gallery.select("old-1")
    gallery.start_remix()
    gallery.cancel_edit()
    assert isinstance(gallery.state, Playing)
    assert gallery.state.video == OLD[0]


def test_blank_prompt_is_rejected(store):
    gallery = browsing_gallery(store)
    gallery.start_create()

    with pytest.raises(ValueError):
        run(gallery.confirm_edit("   "))
    assert isinstance(gallery.state, Editing)


def test_actions_outside_their_states_are_rejected(store):
    gallery = make_gallery(store)

    with pytest.raises(InvalidTransition):
        gallery.select("old-1")

    run(gallery.initialize(now=NOW))
    with pytest.raises(InvalidTransition):
        gallery.close()
    with pytest.raises(InvalidTransition):
        run(gallery.confirm_edit("anything"))
    with pytest.raises(InvalidTransition):
        gallery.start_remix()
    with pytest.raises(InvalidTransition):
        run(gallery.initialize(now=NOW))


def test_write_failure_is_not_fatal(store):
    gallery = browsing_gallery(store)

    def broken_save(videos):
        raise PersistenceWriteError("disk full")

    store.save = broken_save
    gallery.start_create()
    run(gallery.confirm_edit("a heron on a misty lake"))

    assert isinstance(gallery.state, Playing)
    assert gallery.videos[0] == gallery.state.video


def test_error_state_dismisses_to_browsing(store):
    gallery = browsing_gallery(store)
    gallery.select("old-1")

    gallery.fail(["Something went wrong."])
    assert isinstance(gallery.state, Error)
    assert gallery.to_dict()["messages"] == ["Something went wrong."]

    gallery.dismiss_error()
    assert isinstance(gallery.state, Browsing)


def test_stored_video_without_payload_does_not_block_refresh(store):
    store._write({VIDEOS_KEY: json.dumps([{"id": "a", "title": "t", "description": "d"}])})
    store.save_marker(NOW - timedelta(days=1))
    gallery = make_gallery(store, text_generator=FakeTextGenerator(prompts=["p1"]))

    run(gallery.initialize(now=NOW))

    videos, marker = store.load()
    assert [v.description for v in videos] == ["p1"]
    assert marker == NOW


def test_refresh_writes_videos_and_marker_together(store):
    marker = NOW - timedelta(days=1)
    seed(store, marker)
    gallery = make_gallery(store)
    writes = []

    def failing_refresh(videos, timestamp):
        writes.append((len(videos), timestamp))
        raise PersistenceWriteError("disk full")

    store.save_refresh = failing_refresh
    run(gallery.initialize(now=NOW))

    assert writes == [(len(OLD) + 3, NOW)]
    assert store.load() == (OLD, marker)
    assert len(gallery.state.videos) == len(OLD) + 3


def test_dismiss_while_daily_batch_is_polling(store):
    provider = GatedProvider()
    gallery = make_gallery(store, provider=provider)
    gallery.errors = ["Failed to generate daily videos."]

    async def scenario():
        provider.release = asyncio.Event()
        task = asyncio.create_task(gallery.initialize(now=NOW))
        while not provider.waiting:
            await asyncio.sleep(0)

        assert isinstance(gallery.state, DailyRefreshing)
        gallery.dismiss_error()
        assert gallery.errors is None
        assert isinstance(gallery.state, DailyRefreshing)

        provider.release.set()
        await task

    run(scenario())

    assert isinstance(gallery.state, Browsing)
    assert gallery.history == ["loading", "daily_refreshing", "browsing"]
    assert len(provider.submitted) == 3


def test_second_confirm_is_rejected_while_saving(store):
    gallery = browsing_gallery(store)
    gallery.start_create()

    prompt, title = gallery.begin_save("a heron on a misty lake")

    assert (prompt, title) == ("a heron on a misty lake", None)
    assert isinstance(gallery.state, Saving)
    with pytest.raises(InvalidTransition):
        gallery.begin_save("a heron on a misty lake")

    run(gallery.generate(prompt, title))
    assert isinstance(gallery.state, Playing)
    assert len(store.load()[0]) == len(OLD) + 1
