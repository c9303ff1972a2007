from md_preview.core.exceptions import ConfigurationError, RenderError, ServerError, WatchError

__all__ = [
    "ConfigurationError",
    "RenderError",
    "ServerError",
    "WatchError",
]
