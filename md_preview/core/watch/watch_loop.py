import asyncio
from typing import AsyncIterator, Callable, Iterable, Set, Tuple

import structlog
from watchfiles import Change, awatch

from md_preview.configuration import WatchTarget
from md_preview.constants import WATCH_DEBOUNCE_MS, WATCH_RETRY_DELAY
from md_preview.core.channel import ContentChannel
from md_preview.core.exceptions import RenderError, WatchError
from md_preview.core.render import RendererAdapter
from md_preview.core.watch.watch_event import WatchEvent

logger = structlog.getLogger(__name__)

WatchFunction = Callable[..., AsyncIterator[Set[Tuple[Change, str]]]]


class WatchLoop:
    """Renders the watched file whenever it is created or written and publishes the result.

    The directory of the target is watched instead of the file itself, so editors that
    save by replacing the file are noticed as well. Every render (startup, filesystem
    event, page load) runs under the same lock, so the file is never read by two
    renders at once.
    """

    _target: WatchTarget
    _renderer: RendererAdapter
    _channel: ContentChannel
    _watch: WatchFunction
    _retry_delay: float

    _lock: asyncio.Lock
    _stop_event: asyncio.Event
    _pending_refreshes: Set["asyncio.Task[bool]"]

    def __init__(
        self,
        target: WatchTarget,
        renderer: RendererAdapter,
        channel: ContentChannel,
        watch: WatchFunction = awatch,
        retry_delay: float = WATCH_RETRY_DELAY,
    ) -> None:
        self._target = target
        self._renderer = renderer
        self._channel = channel
        self._watch = watch
        self._retry_delay = retry_delay
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._pending_refreshes = set()

    @property
    def target(self) -> WatchTarget:
        return self._target

    def init(self) -> None:
        """Check that the target can be watched.

        Raises:
            WatchError: If the directory of the target does not exist.
        """
        if not self._target.directory.is_dir():
            raise WatchError(f"Directory '{self._target.directory}' does not exist.")

    async def refresh(self) -> bool:
        """Render the target and publish the artifact.

        Returns:
            bool: False if the render failed and nothing was published.
        """
        async with self._lock:
            try:
                artifact = await asyncio.to_thread(self._renderer.load, self._target.path)
            except RenderError as e:
                logger.error("Render failed, keeping previous content", path=str(self._target.path), error=str(e))
                return False
            self._channel.publish(artifact)

        logger.info("Rendered", path=str(self._target.path))
        return True

    def schedule_refresh(self, delay: float) -> "asyncio.Task[bool]":
        """Render the target after delay seconds without waiting for it."""
        task = asyncio.create_task(self._refresh_later(delay))
        self._pending_refreshes.add(task)
        task.add_done_callback(self._pending_refreshes.discard)
        return task

    async def _refresh_later(self, delay: float) -> bool:
        await asyncio.sleep(delay)
        return await self.refresh()

    def should_render(self, event: WatchEvent) -> bool:
        """Only creating or writing the target itself causes a render."""
        return self._target.matches(event.path) and event.triggers_render

    async def handle_changes(self, changes: Iterable[Tuple[Change, str]]) -> bool:
        """Handle one batch of filesystem changes. Renders at most once per batch.

        Returns:
            bool: True if a render was attempted.
        """
        events = [WatchEvent.from_change(change, path) for change, path in changes]
        if not any(self.should_render(event) for event in events):
            return False

        target_events = [event.type.value for event in events if self._target.matches(event.path)]
        logger.debug("Target changed", events=target_events)

        await self.refresh()
        return True

    async def run_forever(self) -> None:
        """Render once, then watch the target directory until :meth:`stop` is called.

        Errors of the notification backend are logged and the watch is set up again.
        """
        await self.refresh()

        directory = self._target.directory
        logger.info("Watching for changes", directory=str(directory), file=self._target.path.name)
        while not self._stop_event.is_set():
            try:
                async for changes in self._watch(
                    directory,
                    watch_filter=None,
                    debounce=WATCH_DEBOUNCE_MS,
                    recursive=False,
                    stop_event=self._stop_event,
                ):
                    await self.handle_changes(changes)
            except Exception as e:
                logger.error("Watching failed, retrying", directory=str(directory), error=str(e))
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._retry_delay)
                except asyncio.TimeoutError:
                    pass

        logger.info("Watch loop stopped")

    def stop(self) -> None:
        self._stop_event.set()
        for task in list(self._pending_refreshes):
            task.cancel()
