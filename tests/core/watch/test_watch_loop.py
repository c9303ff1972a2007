import asyncio
import base64
import threading
import time

import pytest
from watchfiles import Change

from md_preview.configuration import WatchTarget
from md_preview.core.channel import ContentChannel
from md_preview.core.exceptions import WatchError
from md_preview.core.render import RendererAdapter
from md_preview.core.watch import WatchEvent, WatchEventType, WatchLoop


def make_watch(batches, failures=0, gate=None):
    """Fake watchfiles.awatch yielding the given batches once, then waiting for the stop event.

    The first calls raise as many errors as given by failures. With a gate the batches are
    only yielded once the gate is set.
    """
    calls = []
    done = asyncio.Event()

    async def watch(*paths, stop_event=None, **kwargs):
        calls.append((paths, kwargs))
        if len(calls) <= failures:
            raise RuntimeError("watch backend failed")
        if gate is not None:
            await gate.wait()
        for batch in batches:
            yield batch
        done.set()
        await stop_event.wait()

    watch.calls = calls
    watch.done = done
    return watch


def make_watch_loop(path, watch=None, render_function=None):
    channel = ContentChannel()
    renderer = RendererAdapter(render_function) if render_function else RendererAdapter()
    loop = WatchLoop(
        target=WatchTarget(path=path),
        renderer=renderer,
        channel=channel,
        watch=watch or make_watch([]),
        retry_delay=0.01,
    )
    return loop, channel


def decode(artifact):
    return base64.b64decode(artifact)


async def run_until_done(watch_loop, watch):
    task = asyncio.create_task(watch_loop.run_forever())
    await asyncio.wait_for(watch.done.wait(), timeout=5)
    watch_loop.stop()
    await asyncio.wait_for(task, timeout=5)


def test_init_raises_watch_error_for_missing_directory(tmp_path):
    watch_loop, _ = make_watch_loop(tmp_path / "missing" / "readme.md")
    with pytest.raises(WatchError) as err:
        watch_loop.init()
    assert "does not exist" in str(err.value)


def test_init_accepts_existing_directory(tmp_path):
    watch_loop, _ = make_watch_loop(tmp_path / "readme.md")
    watch_loop.init()


def test_refresh_publishes_rendered_file(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("# Title\n\nBody")
    watch_loop, channel = make_watch_loop(path)

    assert asyncio.run(watch_loop.refresh()) is True
    assert decode(channel.latest) == b"<h1>Title</h1>\n<p>Body</p>"


def test_refresh_keeps_previous_artifact_on_render_error(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("first")
    watch_loop, channel = make_watch_loop(path)

    async def scenario():
        await watch_loop.refresh()
        subscription = channel.subscribe()
        path.unlink()
        result = await watch_loop.refresh()
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(subscription.get(), timeout=0.05)
        return result

    assert asyncio.run(scenario()) is False
    assert decode(channel.latest) == b"<p>first</p>"


def test_concurrent_refreshes_do_not_overlap(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("content")
    active = []
    overlaps = []
    calls = []
    lock = threading.Lock()

    def slow_render(raw):
        with lock:
            active.append(1)
            if len(active) > 1:
                overlaps.append(len(active))
        time.sleep(0.05)
        with lock:
            active.pop()
            calls.append(raw)
        return raw

    watch_loop, _ = make_watch_loop(path, render_function=slow_render)

    async def scenario():
        return await asyncio.gather(watch_loop.refresh(), watch_loop.refresh(), watch_loop.refresh())

    assert asyncio.run(scenario()) == [True, True, True]
    assert calls == [b"content"] * 3
    assert overlaps == []


@pytest.mark.parametrize(
    "event_type,expected",
    [
        (WatchEventType.CREATED, True),
        (WatchEventType.WRITTEN, True),
        (WatchEventType.REMOVED, False),
        (WatchEventType.RENAMED, False),
        (WatchEventType.OTHER, False),
    ],
)
def test_should_render_for_target(tmp_path, event_type, expected):
    path = tmp_path / "readme.md"
    watch_loop, _ = make_watch_loop(path)
    assert watch_loop.should_render(WatchEvent(type=event_type, path=path)) is expected


def test_should_not_render_for_other_file(tmp_path):
    watch_loop, _ = make_watch_loop(tmp_path / "readme.md")
    event = WatchEvent(type=WatchEventType.WRITTEN, path=tmp_path / "other.md")
    assert watch_loop.should_render(event) is False


def test_handle_changes_ignores_other_paths(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("content")
    watch_loop, channel = make_watch_loop(path)

    async def scenario():
        return await watch_loop.handle_changes(
            {
                (Change.modified, str(tmp_path / "other.md")),
                (Change.added, str(tmp_path / ".readme.md.swp")),
            }
        )

    assert asyncio.run(scenario()) is False
    assert channel.latest is None


def test_handle_changes_renders_once_per_batch(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("content")
    renders = []
    watch_loop, channel = make_watch_loop(path, render_function=lambda raw: renders.append(raw) or raw)

    async def scenario():
        return await watch_loop.handle_changes({(Change.added, str(path)), (Change.modified, str(path))})

    assert asyncio.run(scenario()) is True
    assert renders == [b"content"]
    assert decode(channel.latest) == b"content"


def test_handle_changes_ignores_removal_of_target(tmp_path):
    path = tmp_path / "readme.md"
    watch_loop, channel = make_watch_loop(path)

    assert asyncio.run(watch_loop.handle_changes({(Change.deleted, str(path))})) is False
    assert channel.latest is None


def test_run_forever_renders_at_startup(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("# Title\n\nBody")
    watch = make_watch([])
    watch_loop, channel = make_watch_loop(path, watch=watch)

    asyncio.run(run_until_done(watch_loop, watch))

    assert decode(channel.latest) == b"<h1>Title</h1>\n<p>Body</p>"
    paths, kwargs = watch.calls[0]
    assert paths == (watch_loop.target.directory,)
    assert kwargs["recursive"] is False
    assert kwargs["watch_filter"] is None


def test_run_forever_renders_on_target_change(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("first")
    published = []

    def render(raw):
        published.append(raw)
        return raw

    watch = make_watch(
        [
            {(Change.modified, str(tmp_path / "other.md"))},
            {(Change.modified, str(path))},
            {(Change.deleted, str(path))},
        ]
    )
    watch_loop, _ = make_watch_loop(path, watch=watch, render_function=render)

    asyncio.run(run_until_done(watch_loop, watch))

    # Startup render plus one render for the write of the target
    assert published == [b"first", b"first"]


def test_run_forever_survives_watch_errors(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("content")
    watch = make_watch([{(Change.modified, str(path))}], failures=2)
    watch_loop, channel = make_watch_loop(path, watch=watch)

    asyncio.run(run_until_done(watch_loop, watch))

    assert len(watch.calls) == 3
    assert decode(channel.latest) == b"<p>content</p>"


def test_run_forever_continues_after_render_error(tmp_path):
    path = tmp_path / "readme.md"
    gate = asyncio.Event()
    watch = make_watch([{(Change.added, str(path))}], gate=gate)
    watch_loop, channel = make_watch_loop(path, watch=watch)

    async def scenario():
        task = asyncio.create_task(watch_loop.run_forever())
        # The startup render fails because the file does not exist yet
        await asyncio.sleep(0.05)
        assert channel.latest is None
        path.write_text("created later")
        gate.set()
        await asyncio.wait_for(watch.done.wait(), timeout=5)
        watch_loop.stop()
        await asyncio.wait_for(task, timeout=5)

    asyncio.run(scenario())
    assert decode(channel.latest) == b"<p>created later</p>"


def test_schedule_refresh_renders_after_delay(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("content")
    watch_loop, channel = make_watch_loop(path)

    async def scenario():
        task = watch_loop.schedule_refresh(0.01)
        assert channel.latest is None
        return await task

    assert asyncio.run(scenario()) is True
    assert decode(channel.latest) == b"<p>content</p>"


def test_stop_cancels_scheduled_refreshes(tmp_path):
    path = tmp_path / "readme.md"
    path.write_text("content")
    watch_loop, channel = make_watch_loop(path)

    async def scenario():
        task = watch_loop.schedule_refresh(10)
        await asyncio.sleep(0)
        watch_loop.stop()
        await asyncio.gather(task, return_exceptions=True)
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert channel.latest is None
