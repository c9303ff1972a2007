import asyncio
import itertools
from types import FrameType
from typing import AsyncIterator, Callable, Optional

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, StreamingResponse
from starlette.routing import Route

from md_preview.configuration import Configuration
from md_preview.constants import DEFAULT_ADDRESS, EVENTS_PATH, GRACEFUL_SHUTDOWN_TIMEOUT
from md_preview.core.channel import ContentChannel, Subscription
from md_preview.core.exceptions import ServerError
from md_preview.core.watch import WatchLoop
from md_preview.server.page import events_url, render_page
from md_preview.server.protocol import EVENT_STREAM_HEADERS, EVENT_STREAM_MEDIA_TYPE, format_frame

logger = structlog.getLogger(__name__)

_viewer_ids = itertools.count(1)


class ViewerConnection:
    """One connected event stream client.

    Owns its own subscription on the content channel; the subscription is closed
    when the client goes away or writing to it fails.
    """

    id: int
    _channel: ContentChannel
    _subscription: Optional[Subscription]

    def __init__(self, channel: ContentChannel) -> None:
        self.id = next(_viewer_ids)
        self._channel = channel
        self._subscription = None

    @property
    def closed(self) -> bool:
        return self._subscription is not None and self._subscription.closed

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield one event frame per published artifact.

        Ends when the client disconnects or the channel is closed.
        """
        # Start with the current artifact so the viewer shows content right away
        self._subscription = self._channel.subscribe(replay_latest=True)
        logger.info("Viewer connected", viewer=self.id)
        try:
            async for artifact in self._subscription:
                yield format_frame(artifact)
        except asyncio.CancelledError:
            logger.debug("Viewer stream cancelled", viewer=self.id)
            raise
        finally:
            self.close()
            logger.info("Viewer disconnected", viewer=self.id)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()


def create_app(configuration: Configuration, channel: ContentChannel, watch_loop: WatchLoop) -> Starlette:
    """Create the ASGI application with the viewer page and the event stream."""
    server_config = configuration.server

    async def page(request: Request) -> HTMLResponse:
        host = server_config.address
        if server_config.binds_all_interfaces:
            # 0.0.0.0 is not reachable from a browser, use what the browser used
            host = request.url.hostname or DEFAULT_ADDRESS

        watch_loop.schedule_refresh(configuration.refresh_delay)
        return HTMLResponse(render_page(events_url(host, server_config.port, EVENTS_PATH)))

    async def events(request: Request) -> StreamingResponse:
        viewer = ViewerConnection(channel)
        return StreamingResponse(viewer.frames(), media_type=EVENT_STREAM_MEDIA_TYPE, headers=EVENT_STREAM_HEADERS)

    return Starlette(
        routes=[
            Route("/", page, methods=["GET"]),
            Route(EVENTS_PATH, events, methods=["GET"]),
        ]
    )


class _UvicornServer(uvicorn.Server):
    """uvicorn server that reports exit requests, e.g. a signal caught by uvicorn itself."""

    def __init__(self, config: uvicorn.Config, on_exit: Callable[[], None]) -> None:
        super().__init__(config)
        self._on_exit = on_exit

    def handle_exit(self, sig: int, frame: Optional[FrameType]) -> None:
        super().handle_exit(sig, frame)
        self._on_exit()


class PreviewServer:
    """HTTP server for the preview application.

    Open event streams keep uvicorn's graceful shutdown waiting, so every exit
    request is passed on to ``on_exit``, which has to end those streams.
    """

    _server: uvicorn.Server
    _on_exit: Optional[Callable[[], None]]
    _loop: Optional[asyncio.AbstractEventLoop]

    def __init__(
        self,
        configuration: Configuration,
        app: Starlette,
        on_exit: Optional[Callable[[], None]] = None,
    ) -> None:
        self._configuration = configuration
        self._on_exit = on_exit
        self._loop = None
        self._server = _UvicornServer(
            uvicorn.Config(
                app,
                host=configuration.server.bind_host,
                port=configuration.server.port,
                log_level="warning",
                # Handlers of the uvicorn loggers are set up by configure_logging
                log_config=None,
                access_log=False,
                lifespan="off",
                timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_TIMEOUT,
            ),
            on_exit=self._notify_exit,
        )

    @property
    def url(self) -> str:
        return f"http://{self._configuration.server.bind_host}:{self._configuration.server.port}"

    async def serve(self) -> None:
        """Serve until :meth:`stop` is called or uvicorn receives a stop signal.

        Raises:
            ServerError: If the listener could not be bound.
        """
        self._loop = asyncio.get_running_loop()
        try:
            await self._server.serve()
        except SystemExit as e:
            # uvicorn exits the process if binding the socket fails
            raise ServerError(f"Could not listen on {self.url}") from e

    def handle_exit(self, sig: int, frame: Optional[FrameType] = None) -> None:
        """Same as a stop signal received by uvicorn."""
        self._server.handle_exit(sig, frame)

    def stop(self) -> None:
        self._server.should_exit = True

    def _notify_exit(self) -> None:
        if self._on_exit is None or self._loop is None:
            return
        # Signal handlers may interrupt the event loop, run the callback from the loop
        self._loop.call_soon_threadsafe(self._on_exit)
