from md_preview.server.app import PreviewServer, ViewerConnection, create_app

__all__ = [
    "PreviewServer",
    "ViewerConnection",
    "create_app",
]
