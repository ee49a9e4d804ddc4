from __future__ import annotations

import os
from pathlib import Path
from typing import List


class Settings:
    """Centralized configuration for the NutriGenie backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("NUTRIGENIE_DATA_ROOT") or data_root_default
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("NUTRIGENIE_DB_PATH") or (self.data_root / "nutrigenie.db")
        ).expanduser()
        # In production you MUST set NUTRIGENIE_JWT_SECRET. The dev secret only keeps local demos easy.
        self.jwt_secret: str = os.environ.get("NUTRIGENIE_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("NUTRIGENIE_TOKEN_TTL_DAYS") or "7")
        self.cookie_secure: bool = (os.environ.get("NUTRIGENIE_COOKIE_SECURE") or "").strip() in {"1", "true", "True"}
        self.max_avatar_bytes: int = int(os.environ.get("NUTRIGENIE_MAX_AVATAR_BYTES") or str(2 * 1024 * 1024))
        self.log_level: str = (os.environ.get("NUTRIGENIE_LOG_LEVEL") or "INFO").upper()

        # ---- LLM (OpenAI-compatible chat completions) ----
        self.llm_api_key: str | None = os.environ.get("OPENROUTER_API_KEY")
        self.llm_base_url: str = os.environ.get("LLM_BASE_URL", "https://openrouter.ai/api/v1")
        self.llm_model: str = os.environ.get("LLM_MODEL", "google/gemini-flash-1.5")
        # Upper bound for a single model call; the request is abandoned past this point.
        self.llm_timeout: float = float(os.environ.get("LLM_TIMEOUT", "60"))
        self.llm_max_tokens: int = int(os.environ.get("LLM_MAX_TOKENS", "1500"))
        self.llm_temperature: float = float(os.environ.get("LLM_TEMPERATURE", "0.4"))

        cors = os.environ.get("NUTRIGENIE_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]
