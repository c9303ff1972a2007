import asyncio
import os
import signal
import sys
import threading
from types import FrameType
from typing import Optional

import structlog

from md_preview.configuration import Configuration
from md_preview.core.exceptions import ServerError, WatchError

from .app import Application

# If uvloop is installed, use it to run async loop
try:
    import uvloop

    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
except ImportError:  # pragma: no cover
    pass

# Signals that should be handled by application
if sys.platform != "win32":
    HANDLED_SIGNALS = (
        signal.SIGINT,  # Unix signal 2. Sent by Ctrl+C .
        signal.SIGTERM,  # Unix signal 15. Sent by `kill <pid>`.
        signal.SIGHUP,
    )
if sys.platform == "win32":
    # Windows signal 21. Sent by Ctrl+Break.
    HANDLED_SIGNALS = (
        signal.SIGINT,  # Unix signal 2. Sent by Ctrl+C.
        signal.SIGTERM,  # Unix signal 15. Sent by `kill <pid>`.
        signal.SIGBREAK,
    )

logger = structlog.getLogger(__name__)


def main(configuration: Configuration) -> int:
    """Run the preview application until it is stopped by a signal.

    Returns:
        int: Process exit code. 1 if the file could not be watched or the server
            could not be started.
    """
    logger.info("Starting... PID: %s", os.getpid())
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    # Prepare application
    app = Application(configuration)

    def handle_exit(signal_number: int, frame: Optional[FrameType]) -> None:
        logger.info("Received signal %s. Sending stop signal to application...", signal.Signals(signal_number).name)
        # The handler may interrupt the event loop, let the loop run the stop
        loop.call_soon_threadsafe(app.stop)

    # Prepare signal handlers
    if threading.current_thread() is not threading.main_thread():
        logger.warning("Cannot install signal handlers from non-main thread")
    else:
        try:
            for sig in HANDLED_SIGNALS:
                if sig is not None:
                    signal.signal(sig, handle_exit)
            logger.info("Signal handlers installed")
        except NotImplementedError:  # pragma: no cover
            logger.warning("Signals are not supported. Possible on Windows")

    # Start application loop
    main_task = loop.create_task(app.run_forever())

    try:
        loop.run_until_complete(main_task)
    except KeyboardInterrupt:
        main_task.cancel()
        loop.run_until_complete(asyncio.gather(main_task, return_exceptions=True))
    except (WatchError, ServerError) as err:
        logger.error("Could not start preview", error=str(err))
        return 1
    finally:
        loop.close()

    return 0
