from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from md_preview.constants import DEFAULT_ADDRESS, DEFAULT_PORT, PAGE_REFRESH_DELAY


class Settings(BaseSettings):
    """
    Environment defaults for md-preview. Command line options take precedence.
    """

    model_config = SettingsConfigDict(env_prefix="MD_PREVIEW_")

    # Server settings
    port: int = Field(default=DEFAULT_PORT)
    address: str = Field(default=DEFAULT_ADDRESS)

    # Seconds between a page load and the render it schedules
    refresh_delay: float = Field(default=PAGE_REFRESH_DELAY, ge=0)

    # Render logs as JSON lines instead of the console renderer
    log_json: bool = Field(default=False)
