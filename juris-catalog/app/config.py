from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    data_dir: Path = BASE_DIR / "data" / "user"
    dataset_source: str = str(BASE_DIR / "data" / "tst_data_complete.json")
    fetch_timeout: float = 30.0

    model_config = {
        "env_file": BASE_DIR / ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "JURIS_",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
