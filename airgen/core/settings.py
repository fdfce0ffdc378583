from __future__ import annotations

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("settings.invalid_env", name=name, value=raw, default=default)
        return default


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-3-flash-preview"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    airtable_api_base: str = "https://api.airtable.com/v0"
    state_path: Path = Field(default_factory=lambda: Path.home() / ".airgen" / "state.json")
    export_root: Path = Field(default_factory=lambda: Path.cwd() / "exports")
    fetch_limit: int = 50
    generation_timeout: float = 120.0
    scan_delay: float = 0.8
    verify_delay: float = 1.2
    cooldown_delay: float = 0.8
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        values: dict[str, object] = {
            "gemini_api_key": os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
            "generation_timeout": _env_float("AIRGEN_GENERATION_TIMEOUT", 120.0),
            "scan_delay": _env_float("AIRGEN_SCAN_DELAY", 0.8),
            "verify_delay": _env_float("AIRGEN_VERIFY_DELAY", 1.2),
            "cooldown_delay": _env_float("AIRGEN_COOLDOWN_DELAY", 0.8),
            "log_level": os.getenv("AIRGEN_LOG_LEVEL") or "INFO",
            "log_json": _env_flag("AIRGEN_LOG_JSON"),
        }
        if model := os.getenv("GEMINI_MODEL"):
            values["gemini_model"] = model
        if base := os.getenv("GEMINI_API_BASE"):
            values["gemini_api_base"] = base
        if base := os.getenv("AIRTABLE_API_BASE"):
            values["airtable_api_base"] = base
        if state_path := os.getenv("AIRGEN_STATE_PATH"):
            values["state_path"] = Path(state_path).expanduser()
        if export_root := os.getenv("AIRGEN_EXPORT_ROOT"):
            values["export_root"] = Path(export_root).expanduser()
        if fetch_limit := os.getenv("AIRGEN_FETCH_LIMIT"):
            try:
                values["fetch_limit"] = int(fetch_limit)
            except ValueError:
                logger.warning("settings.invalid_env", name="AIRGEN_FETCH_LIMIT", value=fetch_limit, default=50)

        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
        if origins:
            values["cors_origins"] = origins
        return cls(**values)
