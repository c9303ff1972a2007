import markdown

MARKDOWN_EXTENSIONS = ["extra"]


def markdown_to_html(data: bytes) -> bytes:
    """Render markdown source to an HTML fragment.

    Invalid UTF-8 sequences are replaced instead of failing the render.
    """
    text = data.decode("utf-8", errors="replace")
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS).encode("utf-8")
