"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking
  into the CLI.
- Lets adapters (HTTP/GraphQL) read config consistently.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.window import TimeWindow


DEFAULT_SECTION_IDS: tuple[str, ...] = (
    "Axelar",
    "Alchemix",
    "Arbitrum",
    "TON Foundation",
    "Compound",
    "ENS",
    "Okto",
)


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "grant-pulse"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "grant-pulse"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "grant-pulse"
    return Path.home() / ".config" / "grant-pulse"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# grant-pulse user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typed and validated at the edge (env vars) without polluting the Core.
    - A single configuration contract for CLI and adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="GRANT_PULSE_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    graphql_url: str = Field(
        default="https://api-grants.questbook.app/graphql",
        min_length=8,
        description="Questbook GraphQL endpoint.",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout per request (seconds).",
    )
    user_agent: str = Field(
        default="grant-pulse/0.1",
        min_length=1,
        description="User-Agent sent with GraphQL requests.",
    )

    section_ids: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SECTION_IDS),
        description="Sections loaded by the dashboard (JSON list in env vars).",
    )
    result_limit: int = Field(
        default=10_000,
        ge=1,
        description="Row cap for transfer/application queries. Truncation is silent.",
    )
    transfer_status: str | None = Field(
        default=None,
        description="Optional fund-transfer status filter (e.g. 'executed').",
    )
    application_state: str = Field(
        default="approved",
        min_length=1,
        description="Grant-application state counted as allocated funding.",
    )

    default_window: TimeWindow = Field(
        default=TimeWindow.WEEKLY,
        description="Window used when the CLI gets no --window.",
    )
    ipfs_gateway_url: str = Field(
        default="https://ipfs.io/ipfs/",
        description="Gateway prefix for section logos.",
    )
