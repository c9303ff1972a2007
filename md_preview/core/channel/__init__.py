from md_preview.core.channel.content_channel import ContentChannel, Subscription

__all__ = [
    "ContentChannel",
    "Subscription",
]
