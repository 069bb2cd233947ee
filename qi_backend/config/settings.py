from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]
    mappings_file: Optional[Path] = None
    submissions_max_page_size: int = 100
    mappings_max_page_size: int = 1000
    export_max_column_width: int = 50

    class Config:
        env_file = ".env"
        env_prefix = "QI_"
