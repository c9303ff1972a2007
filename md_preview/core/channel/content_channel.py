import asyncio
import threading
from types import TracebackType
from typing import List, Optional, Set, Type

import structlog

logger = structlog.getLogger(__name__)


class Subscription:
    """Per viewer hand-off slot of the content channel.

    Holds at most one pending artifact. Offering a new artifact while an older one
    is still unconsumed replaces the older one. Closing the subscription wakes a
    consumer that is waiting for the next artifact.
    """

    _channel: "ContentChannel"
    _queue: "asyncio.Queue[Optional[bytes]]"
    _closed: bool

    def __init__(self, channel: "ContentChannel") -> None:
        self._channel = channel
        self._queue = asyncio.Queue(maxsize=1)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, artifact: bytes) -> None:
        """Queue an artifact without blocking; a pending older artifact is discarded."""
        if self._closed:
            return
        self._replace(artifact)

    def _replace(self, item: Optional[bytes]) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    async def get(self) -> Optional[bytes]:
        """Wait for the next artifact.

        Returns:
            Optional[bytes]: The artifact, or None once the subscription is closed.
        """
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        """Deregister from the channel. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        # None marks the end of the stream for a consumer blocked in get()
        self._replace(None)
        self._channel._unregister(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> bytes:
        artifact = await self.get()
        if artifact is None:
            raise StopAsyncIteration
        return artifact

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()


class ContentChannel:
    """Publish point for rendered artifacts.

    Every publish is fanned out to the subscription of each connected viewer, so
    viewers never take artifacts away from each other.
    """

    _subscriptions: Set[Subscription]
    _lock: threading.Lock
    _latest: Optional[bytes]
    _closed: bool

    def __init__(self) -> None:
        self._subscriptions = set()
        self._lock = threading.Lock()
        self._latest = None
        self._closed = False

    @property
    def latest(self) -> Optional[bytes]:
        """The current artifact or None if nothing was published yet."""
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, artifact: bytes) -> None:
        """Make artifact the current one and hand it to every subscription."""
        with self._lock:
            self._latest = artifact
            subscriptions = list(self._subscriptions)
            for subscription in subscriptions:
                subscription.offer(artifact)
        logger.debug("Artifact published", size=len(artifact), subscribers=len(subscriptions))

    def subscribe(self, replay_latest: bool = False) -> Subscription:
        """Register a new subscription.

        Args:
            replay_latest (bool): Queue the current artifact, if any, right away.

        Returns:
            Subscription: The new subscription; close it to deregister. On a closed
                channel the subscription is returned already closed.
        """
        subscription = Subscription(self)
        with self._lock:
            if not self._closed:
                if replay_latest and self._latest is not None:
                    subscription.offer(self._latest)
                self._subscriptions.add(subscription)
                return subscription
        subscription.close()
        return subscription

    def close(self) -> None:
        """End every subscription. Later subscriptions are closed right away."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions: List[Subscription] = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.close()
        logger.debug("Channel closed", subscribers=len(subscriptions))

    def _unregister(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.discard(subscription)
