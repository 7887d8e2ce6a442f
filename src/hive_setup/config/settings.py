from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_REPOSITORY_URL = "https://github.com/BuddhiLW/hive-mcp.git"
DEFAULT_PROBE_TIMEOUT = 2.0


def expand_path(path: str | Path) -> Path:
    return Path(path).expanduser()


def _default_hive_mcp_dir() -> Path:
    return Path.home() / "hive-mcp"


def _default_database_url() -> str:
    return f"sqlite:///{Path.home() / '.local' / 'share' / 'hive-setup' / 'history.db'}"


def _default_log_dir() -> Path:
    return Path.home() / ".local" / "state" / "hive-setup" / "logs"


@dataclass(slots=True)
class Settings:
    app_name: str = "hive-setup"
    hive_mcp_dir: Path = field(default_factory=_default_hive_mcp_dir)
    repository_url: str = DEFAULT_REPOSITORY_URL
    database_url: str = field(default_factory=_default_database_url)
    log_dir: Path = field(default_factory=_default_log_dir)
    chroma_url: str = "http://localhost:8000"
    ollama_url: str = "http://localhost:11434"
    embedding_model: str = "nomic-embed-text"
    mcp_server_name: str = "emacs"
    probe_timeout_seconds: float = DEFAULT_PROBE_TIMEOUT

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls()
        hive_mcp_dir = os.getenv("HIVE_MCP_DIR")
        if hive_mcp_dir:
            settings.hive_mcp_dir = expand_path(hive_mcp_dir)
        log_dir = os.getenv("HIVE_SETUP_LOG_DIR")
        if log_dir:
            settings.log_dir = expand_path(log_dir)

        settings.repository_url = os.getenv("HIVE_SETUP_REPOSITORY_URL", settings.repository_url)
        settings.database_url = os.getenv("HIVE_SETUP_DATABASE_URL", settings.database_url)
        settings.chroma_url = os.getenv("HIVE_SETUP_CHROMA_URL", settings.chroma_url).rstrip("/")
        settings.ollama_url = os.getenv("HIVE_SETUP_OLLAMA_URL", settings.ollama_url).rstrip("/")
        settings.embedding_model = os.getenv("HIVE_SETUP_EMBEDDING_MODEL", settings.embedding_model)
        settings.mcp_server_name = os.getenv("HIVE_SETUP_MCP_SERVER", settings.mcp_server_name)

        timeout_raw = os.getenv("HIVE_SETUP_PROBE_TIMEOUT", str(DEFAULT_PROBE_TIMEOUT))
        try:
            timeout = float(timeout_raw)
        except ValueError:
            timeout = DEFAULT_PROBE_TIMEOUT
        settings.probe_timeout_seconds = timeout if timeout > 0 else DEFAULT_PROBE_TIMEOUT
        return settings

    @property
    def chroma_heartbeat_url(self) -> str:
        return f"{self.chroma_url}/api/v2/heartbeat"

    @property
    def ollama_tags_url(self) -> str:
        return f"{self.ollama_url}/api/tags"
