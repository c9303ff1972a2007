import ipaddress
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from md_preview.constants import (
    ADDRESS_ANY,
    ADDRESS_LOCALHOST,
    BIND_ALL_HOST,
    DEFAULT_ADDRESS,
    DEFAULT_PORT,
    PAGE_REFRESH_DELAY,
)
from md_preview.core.exceptions import ConfigurationError

logger = structlog.getLogger(__name__)


def normalize_path(path: Path | str) -> Path:
    """Absolute form of path used to compare filesystem event paths with the watch target.

    Only the parent directory is resolved, the file name is kept. This way a symlinked
    directory (e.g. /var -> /private/var) compares equal to the path the watcher reports.
    """
    path = Path(path)
    return path.parent.resolve() / path.name


class WatchTarget(BaseModel):
    """The single file that is watched and rendered."""

    model_config = ConfigDict(frozen=True)

    path: Path

    @field_validator("path")
    @classmethod
    def validate_path(cls, path: Path) -> Path:
        return normalize_path(path)

    @property
    def directory(self) -> Path:
        """Directory that has to be watched to see changes of the target."""
        return self.path.parent

    def matches(self, path: Path | str) -> bool:
        """Check if a filesystem event path refers to the target."""
        return normalize_path(path) == self.path


class ServerConfig(BaseModel):
    """Address and port the preview server listens on."""

    model_config = ConfigDict(frozen=True)

    address: str = DEFAULT_ADDRESS
    port: int = DEFAULT_PORT

    @field_validator("port", mode="before")
    @classmethod
    def parse_port(cls, port: Any) -> Any:
        # Command line values arrive as text
        if isinstance(port, str):
            try:
                return int(port.strip())
            except ValueError:
                raise ValueError(f"invalid port number: {port}. Valid range is 1-65535")
        return port

    @field_validator("port")
    @classmethod
    def validate_port(cls, port: int) -> int:
        if not 1 <= port <= 65535:
            raise ValueError(f"invalid port number: {port}. Valid range is 1-65535")
        return port

    @field_validator("address")
    @classmethod
    def validate_address(cls, address: str) -> str:
        if address in (ADDRESS_LOCALHOST, ADDRESS_ANY):
            return address
        try:
            ipaddress.IPv4Address(address)
        except ValueError:
            raise ValueError(f"Invalid address: {address}. Please give a valid ip, 'localhost' or 'any'")
        return address

    @property
    def bind_host(self) -> str:
        """Host handed to the listener; 'any' binds all interfaces."""
        if self.address == ADDRESS_ANY:
            return BIND_ALL_HOST
        return self.address

    @property
    def binds_all_interfaces(self) -> bool:
        return self.bind_host == BIND_ALL_HOST


class Configuration(BaseModel):
    """Application configuration. Immutable for the lifetime of the process.

    Has to be created with :func:`load_configuration` from command line input.
    """

    model_config = ConfigDict(frozen=True)

    markdown_file: Path
    server: ServerConfig = Field(default_factory=ServerConfig)
    refresh_delay: float = Field(default=PAGE_REFRESH_DELAY, ge=0)

    @field_validator("markdown_file", mode="before")
    @classmethod
    def validate_markdown_file(cls, markdown_file: Any) -> Any:
        if markdown_file is None or str(markdown_file).strip() == "":
            raise ValueError("missing markdown file argument")
        return markdown_file

    @property
    def target(self) -> WatchTarget:
        return WatchTarget(path=self.markdown_file)


def _format_validation_error(error: ValidationError) -> str:
    # Custom validator messages are prefixed with "Value error, " by pydantic
    messages = []
    for detail in error.errors():
        message = detail["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        messages.append(message)
    return "; ".join(messages)


def load_configuration(
    markdown_file: str | Path | None,
    port: int | str = DEFAULT_PORT,
    address: str = DEFAULT_ADDRESS,
    refresh_delay: float = PAGE_REFRESH_DELAY,
) -> Configuration:
    """Validate command line input and build the configuration.

    Args:
        markdown_file (str | Path | None): Path of the file to preview.
        port (int | str): Port of the preview server. Defaults to 8080.
        address (str): 'localhost', 'any' or an IPv4 address. Defaults to "localhost".
        refresh_delay (float): Seconds between a page load and the render it schedules.

    Returns:
        Configuration: The validated configuration.

    Raises:
        ConfigurationError: If any of the values is invalid.
    """
    try:
        config = Configuration(
            markdown_file=markdown_file,
            server={"address": address, "port": port},
            refresh_delay=refresh_delay,
        )
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e

    logger.debug("Configuration loaded", markdown_file=str(config.markdown_file), address=address, port=port)
    return config
