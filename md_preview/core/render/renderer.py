import base64
from pathlib import Path
from typing import Callable

import structlog

from md_preview.core.exceptions import RenderError
from md_preview.core.render.markdown_renderer import markdown_to_html
from md_preview.core.render.postprocess import shrink

logger = structlog.getLogger(__name__)

RenderFunction = Callable[[bytes], bytes]


class RendererAdapter:
    """Turns the raw bytes of the watched file into an artifact that can be pushed to viewers.

    The artifact is the postprocessed render encoded as standard base64 without line
    wrapping, so it always fits into a single event stream line.
    """

    _render_function: RenderFunction

    def __init__(self, render_function: RenderFunction = markdown_to_html) -> None:
        self._render_function = render_function

    def render_and_encode(self, raw: bytes) -> bytes:
        """Render, postprocess and encode raw file content.

        Args:
            raw (bytes): Content of the watched file.

        Returns:
            bytes: Base64 encoded artifact.

        Raises:
            RenderError: If the render function fails.
        """
        try:
            rendered = self._render_function(raw)
        except Exception as e:
            raise RenderError(f"Render function failed: {e}") from e

        return base64.b64encode(shrink(rendered))

    def load(self, path: Path) -> bytes:
        """Read the file at path and return its artifact.

        Raises:
            RenderError: If the file can not be read or rendered.
        """
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise RenderError(f"Could not read '{path}': {e}") from e

        logger.debug("File read", path=str(path), size=len(raw))
        return self.render_and_encode(raw)
