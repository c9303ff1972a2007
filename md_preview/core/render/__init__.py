from md_preview.core.render.markdown_renderer import markdown_to_html
from md_preview.core.render.postprocess import shrink
from md_preview.core.render.renderer import RendererAdapter, RenderFunction

__all__ = [
    "RendererAdapter",
    "RenderFunction",
    "markdown_to_html",
    "shrink",
]
