"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from confsync.errors import ConfigurationError
from confsync.utils.urls import sanitize_url

DEFAULT_PAGE_SIZE = 50
DEFAULT_IDLE_TIMEOUT = 300.0


def _get_default_db_path() -> Path:
    """Get the default database path based on the execution context."""
    # When running from source, prefer local data/ if it exists
    local_db = Path("data/confsync.db")
    if local_db.exists():
        return local_db

    return Path.home() / ".confsync" / "confsync.db"


def _env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(f"CONFSYNC_{name}", default)


@dataclass(slots=True)
class ServerConfig:
    """Connection parameters for one Confluence instance."""

    protocol: str = "http"
    host: str = ""
    port: str | int | None = None
    path: str = "/confluence"
    username: str = ""
    password: str | None = None

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            protocol=_env("PROTOCOL", "http") or "",
            host=_env("HOST", "") or "",
            port=_env("PORT"),
            path=_env("PATH", "/confluence") or "",
            username=_env("USERNAME", "") or "",
            password=_env("PASSWORD"),
        )

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` if a required parameter is missing."""
        for name in ("protocol", "host", "path"):
            if not getattr(self, name):
                raise ConfigurationError(f"Parameter {name} required but not set")
        self.resolved_port()

    def resolved_port(self) -> int:
        if self.port is None or self.port == "":
            return 80 if self.protocol.lower() == "http" else 443
        try:
            return int(self.port)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Bad number: {exc}") from exc

    def base_url(self) -> str:
        return sanitize_url(f"{self.protocol}://{self.host}:{self.resolved_port()}/{self.path}")

    @property
    def uses_basic_auth(self) -> bool:
        return bool(self.username) and self.password is not None


@dataclass(slots=True)
class JobSpec:
    """What a single crawl job covers."""

    space: Optional[str] = None
    include_attachments: bool = False

    def __post_init__(self) -> None:
        if not self.space:
            self.space = None

    @classmethod
    def from_spaces(cls, spaces: Sequence[str], *, include_attachments: bool = False) -> "JobSpec":
        keys = [key for key in spaces if key]
        if len(keys) > 1:
            raise ConfigurationError("At most one space key may be given per job")
        return cls(space=keys[0] if keys else None, include_attachments=include_attachments)


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    server: ServerConfig = field(default_factory=ServerConfig.from_env)
    page_size: int = DEFAULT_PAGE_SIZE
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    request_timeout: float = 30.0
    batch_size: int = 10

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path
