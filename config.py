# config.py
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    database_url: str
    debounce_seconds: float = 0.3
    double_click_seconds: float = 0.3
    target_percent: int = 60
    timezone: Optional[tzinfo] = None
    log_level: str = "INFO"

    def now(self) -> datetime:
        return datetime.now(self.timezone) if self.timezone else datetime.now()

    def today(self) -> date:
        return self.now().date()


def _pick_data_dir() -> Path:
    candidates = []
    env = os.getenv("DATA_DIR")
    if env:
        candidates.append(Path(env))
    candidates += [Path("/data"), Path.cwd() / "data"]

    for p in candidates:
        try:
            p.mkdir(parents=True, exist_ok=True)
            t = p / ".rwtest"
            t.write_text("ok")
            t.unlink(missing_ok=True)
            return p
        except OSError:
            continue
    return Path.cwd()


def load_settings() -> Settings:
    data_dir = _pick_data_dir()
    default_sqlite = f"sqlite:///{(data_dir / 'attendance.db').as_posix()}"
    tz_name = os.getenv("APP_TIMEZONE")
    return Settings(
        data_dir=data_dir,
        database_url=os.getenv("DATABASE_URL", default_sqlite),
        debounce_seconds=int(os.getenv("SAVE_DEBOUNCE_MS", "300")) / 1000.0,
        double_click_seconds=int(os.getenv("DOUBLE_CLICK_MS", "300")) / 1000.0,
        target_percent=int(os.getenv("ATTENDANCE_TARGET_PERCENT", "60")),
        timezone=ZoneInfo(tz_name) if tz_name else None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
