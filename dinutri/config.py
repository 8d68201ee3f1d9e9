from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional


class Settings:
    """Centralized configuration for the DiNutri backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        data_root_default = base_dir.parent / "data"

        self.data_root: Path = Path(
            os.environ.get("DINUTRI_DATA_ROOT") or data_root_default
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("DINUTRI_DB_PATH") or (self.data_root / "dinutri.db")
        ).expanduser()
        # In production you MUST set DINUTRI_JWT_SECRET. The dev secret only keeps local demos easy.
        self.jwt_secret: str = os.environ.get("DINUTRI_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("DINUTRI_TOKEN_TTL_DAYS") or "7")
        self.cookie_secure: bool = (os.environ.get("DINUTRI_COOKIE_SECURE") or "").strip() in {"1", "true", "True"}
        self.environment: str = (os.environ.get("DINUTRI_ENV") or "production").strip().lower()
        self.log_level: str = (os.environ.get("DINUTRI_LOG_LEVEL") or "INFO").strip().upper()
        self.invitation_ttl_days: int = int(os.environ.get("DINUTRI_INVITATION_TTL_DAYS") or "7")
        font = os.environ.get("DINUTRI_PDF_FONT")
        self.pdf_font_path: Optional[Path] = Path(font).expanduser() if font else None

        cors = os.environ.get("DINUTRI_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]

    @property
    def is_development(self) -> bool:
        return self.environment in {"development", "dev"}


settings = Settings()
