"""
Configuration management for Salescout.
"""
import os
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.parent.parent
    SRC_DIR = PROJECT_ROOT / "src"

    # API Keys
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")

    # LLM extraction
    EXTRACTION_MODEL: str = os.getenv("EXTRACTION_MODEL", "gpt-4o-mini")
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.1"))
    LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "800"))
    LLM_TIMEOUT_S: float = float(os.getenv("LLM_TIMEOUT_S", "45"))

    # Page fetching
    FETCH_TIMEOUT_S: float = float(os.getenv("FETCH_TIMEOUT_S", "10"))
    FETCH_USER_AGENT: str = os.getenv(
        "FETCH_USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )

    # Extraction defaults
    MAX_REDUCED_CHARS: int = int(os.getenv("MAX_REDUCED_CHARS", "50000"))
    CONFIDENCE_THRESHOLD: int = int(os.getenv("CONFIDENCE_THRESHOLD", "50"))
    PIPELINE_DEADLINE_S: float = float(os.getenv("PIPELINE_DEADLINE_S", "90"))
    MAX_BATCH_URLS: int = int(os.getenv("MAX_BATCH_URLS", "50"))

    # Flask settings
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")
    FLASK_DEBUG: bool = os.getenv("FLASK_DEBUG", "True").lower() == "true"
    FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")
    FLASK_PORT: int = int(os.getenv("FLASK_PORT", "5000"))
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not cls.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY not set in environment (AI extraction will fail)")

        if not 0 <= cls.CONFIDENCE_THRESHOLD <= 100:
            errors.append(f"Invalid CONFIDENCE_THRESHOLD: {cls.CONFIDENCE_THRESHOLD}. Must be between 0 and 100")

        if cls.MAX_REDUCED_CHARS <= 0:
            errors.append(f"Invalid MAX_REDUCED_CHARS: {cls.MAX_REDUCED_CHARS}. Must be positive")

        for name in ("FETCH_TIMEOUT_S", "LLM_TIMEOUT_S", "PIPELINE_DEADLINE_S"):
            if getattr(cls, name) <= 0:
                errors.append(f"Invalid {name}: {getattr(cls, name)}. Must be positive")

        return errors

    @classmethod
    def is_valid(cls) -> bool:
        """Check if configuration is valid."""
        return len(cls.validate()) == 0

    @classmethod
    def get_cors_origins(cls) -> list[str]:
        """Parse CORS_ORIGINS into a list of origins."""
        origins = [o.strip() for o in cls.CORS_ORIGINS.split(",") if o.strip()]
        return origins or ["*"]

    @classmethod
    def get_summary(cls) -> dict:
        """Get configuration summary (safe for logging)."""
        return {
            "flask_env": cls.FLASK_ENV,
            "flask_debug": cls.FLASK_DEBUG,
            "extraction_model": cls.EXTRACTION_MODEL,
            "openai_api_configured": cls.OPENAI_API_KEY is not None,
            "confidence_threshold": cls.CONFIDENCE_THRESHOLD,
            "max_reduced_chars": cls.MAX_REDUCED_CHARS,
            "fetch_timeout_s": cls.FETCH_TIMEOUT_S,
            "llm_timeout_s": cls.LLM_TIMEOUT_S,
            "log_level": cls.LOG_LEVEL,
        }
