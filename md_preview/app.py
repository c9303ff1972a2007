import asyncio

import structlog
from watchfiles import awatch

from md_preview.configuration import Configuration
from md_preview.core.channel import ContentChannel
from md_preview.core.render import RendererAdapter, RenderFunction, markdown_to_html
from md_preview.core.watch import WatchFunction, WatchLoop
from md_preview.server import PreviewServer, create_app

logger = structlog.getLogger(__name__)


class Application:
    """This class is the main application.
    It wires the watch loop, the content channel and the preview server together,
    runs them until the server stops and finally shuts down the watch loop.
    """

    _configuration: Configuration
    _channel: ContentChannel
    _watch_loop: WatchLoop
    _server: PreviewServer

    def __init__(
        self,
        configuration: Configuration,
        render_function: RenderFunction = markdown_to_html,
        watch: WatchFunction = awatch,
    ) -> None:
        self._configuration = configuration
        self._channel = ContentChannel()
        self._watch_loop = WatchLoop(
            target=configuration.target,
            renderer=RendererAdapter(render_function),
            channel=self._channel,
            watch=watch,
        )
        self._server = PreviewServer(
            configuration,
            create_app(configuration, self._channel, self._watch_loop),
            on_exit=self.stop,
        )

    @property
    def url(self) -> str:
        return self._server.url

    async def run_forever(self) -> None:
        """Start watching the file and serve viewers until stopped.

        Raises:
            WatchError: If the file can not be watched.
            ServerError: If the server can not listen on the configured address.
        """
        self._watch_loop.init()

        logger.info("Starting application...", file=str(self._configuration.target.path), url=self.url)
        watch_task = asyncio.create_task(self._watch_loop.run_forever())
        try:
            await self._server.serve()
        finally:
            self._channel.close()
            self._watch_loop.stop()
            await watch_task
            logger.info("Application shutdown done")

    def stop(self) -> None:
        """Stop serving. Open event streams are ended so the server can shut down."""
        logger.info("Stopping application...")
        self._server.stop()
        self._channel.close()
        self._watch_loop.stop()
