import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    db_path: Path
    max_page_size: int = 100


def load_settings() -> Settings:
    root_dir = Path(__file__).resolve().parents[2]
    db_default = root_dir / "backend" / "data" / "sessions.db"
    db_path = Path(os.getenv("COGTRIALS_DB_PATH", str(db_default))).expanduser()
    try:
        max_page_size = int(os.getenv("COGTRIALS_MAX_PAGE_SIZE", "100"))
    except ValueError:
        max_page_size = 100
    return Settings(db_path=db_path, max_page_size=max(1, max_page_size))
