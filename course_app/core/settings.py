"""Runtime settings read from ``COURSEQT_*`` environment variables."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from course_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from course_app.constants.quiz_constants import PROGRESS_WRITE_ATTEMPTS, TICK_INTERVAL_SECONDS

_PACKAGE_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class Settings:
    api_host: str
    api_port: int
    api_enabled: bool
    log_level: str
    tick_interval_seconds: int
    progress_write_attempts: int
    data_dir: Path
    demo_role: str


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    tick_interval_seconds = int(os.getenv("COURSEQT_TICK_INTERVAL_SECONDS", str(TICK_INTERVAL_SECONDS)))
    if tick_interval_seconds <= 0:
        raise ValueError("COURSEQT_TICK_INTERVAL_SECONDS must be positive.")
    progress_write_attempts = int(os.getenv("COURSEQT_PROGRESS_WRITE_ATTEMPTS", str(PROGRESS_WRITE_ATTEMPTS)))
    data_dir_raw = os.getenv("COURSEQT_DATA_DIR", "").strip()
    demo_role = os.getenv("COURSEQT_DEMO_ROLE", "student").strip().lower()
    if demo_role not in {"student", "teacher"}:
        raise ValueError("COURSEQT_DEMO_ROLE must be 'student' or 'teacher'.")

    return Settings(
        api_host=os.getenv("COURSEQT_API_HOST", DEFAULT_HOST),
        api_port=int(os.getenv("COURSEQT_API_PORT", str(DEFAULT_PORT))),
        api_enabled=_env_flag("COURSEQT_API_ENABLED", "1"),
        log_level=os.getenv("COURSEQT_LOG_LEVEL", "INFO").strip().upper(),
        tick_interval_seconds=tick_interval_seconds,
        progress_write_attempts=max(1, progress_write_attempts),
        data_dir=Path(data_dir_raw) if data_dir_raw else _PACKAGE_DATA_DIR,
        demo_role=demo_role,
    )
