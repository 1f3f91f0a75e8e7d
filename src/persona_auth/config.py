from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env if present
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    storage_state_dir: str = os.getenv("PERSONA_AUTH_DIR", os.path.join("playwright", ".auth"))
    strict_origin_restore: bool = _env_flag("PERSONA_AUTH_STRICT_ORIGINS", "true")


settings = Settings()
