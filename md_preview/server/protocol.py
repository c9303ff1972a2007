EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

# Viewers are local development tools, so any origin may connect
EVENT_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Expose-Headers": "Content-Type",
}


def format_frame(artifact: bytes) -> bytes:
    """Wrap an artifact into a single server-sent event frame.

    The artifact is base64 text and therefore never contains a line break.
    """
    return b"data: " + artifact + b"\n\n"
