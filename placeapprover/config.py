import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .constants import DEFAULT_MODEL, DEFAULT_MAX_TOKENS
from .env import load_env

OPTIONAL_CREDENTIALS = ["ANTHROPIC_API_KEY"]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    database_path: Path = Path("data/places.db")
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_file: bool = True

    @classmethod
    def from_env(cls, load_dotenv_files: bool = True) -> "Settings":
        """Build settings from the environment (after loading .env files)."""
        if load_dotenv_files:
            load_env()
        return cls(
            database_path=Path(os.getenv("PLACEAPPROVER_DB", "data/places.db")),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            anthropic_model=os.getenv("ANTHROPIC_MODEL", DEFAULT_MODEL),
            max_tokens=int(os.getenv("ANTHROPIC_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=Path(os.getenv("LOG_DIR", "logs")),
            log_to_file=_env_bool("LOG_TO_FILE", True),
        )

    def missing_optional(self) -> List[str]:
        """Env names of optional credentials that are not set."""
        return [name for name in OPTIONAL_CREDENTIALS if not getattr(self, name.lower())]
