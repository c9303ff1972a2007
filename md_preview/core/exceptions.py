from typing import Optional


class ConfigurationError(Exception):
    """Should be raised if the command line input can not be turned into a valid configuration."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(f"[Configuration] {message or 'Configuration is invalid'}")


class WatchError(Exception):
    """Should be raised if the watched file can not be monitored."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(f"[Watch] {message or 'Watching the file failed'}")


class RenderError(Exception):
    """Should be raised if reading or rendering the watched file fails."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(f"[Render] {message or 'Rendering failed'}")


class ServerError(Exception):
    """Should be raised if the preview server can not be started."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(f"[Server] {message or 'Server could not be started'}")
