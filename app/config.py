import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()  # Load .env automatically

ROOT_DIR = Path(__file__).parent.parent


def _int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


def _float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, ""))
    except ValueError:
        return default


class Settings:
    CATALOG_FILE: Path = Path(os.getenv("CATALOG_FILE", str(ROOT_DIR / "data" / "courses.json")))
    RAW_CATALOG_FILE: Path = Path(os.getenv("RAW_CATALOG_FILE", str(ROOT_DIR / "data" / "raw_courses.json")))
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "").strip()
    SUPABASE_KEY: str = (os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_SERVICE_KEY") or "").strip()
    CATALOG_TABLE: str = os.getenv("CATALOG_TABLE", "courses")
    CATALOG_RETRIES: int = _int("CATALOG_RETRIES", 3)
    CATALOG_RETRY_DELAY: float = _float("CATALOG_RETRY_DELAY", 1.0)
    FRONTEND_ORIGIN: str = os.getenv("FRONTEND_ORIGIN", "").strip()
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    API_URL: str = os.getenv("API_URL", "http://localhost:8000").rstrip("/")

    @property
    def use_supabase(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY)


settings = Settings()
