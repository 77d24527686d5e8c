"""
Application configuration and settings
"""
from pydantic_settings import BaseSettings
from typing import List
import os


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    PROJECT_NAME: str = "MILO Clinical Assistant"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "postgresql://localhost/milo")

    # Anthropic API (server-side only, never sent to the browser)
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    LLM_MODEL: str = "claude-sonnet-4-20250514"
    LAB_ANALYSIS_MODEL: str = "claude-sonnet-4-20250514"
    LLM_MAX_TOKENS: int = 4000
    DEFAULT_TEMPERATURE: float = 0.2

    # Prompt templates
    PROMPT_VERSION: str = os.getenv("PROMPT_VERSION", "v3")

    # Document handling
    MAX_DOCUMENT_CHARS: int = 12000
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB
    OCR_LANGUAGE: str = "eng"
    OCR_RENDER_SCALE: float = 2.0

    # CORS - Allow these origins
    CORS_ORIGINS: str = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173"
    )

    @property
    def database_url(self) -> str:
        """Normalize Heroku/Render style postgres:// URLs"""
        if self.DATABASE_URL.startswith("postgres://"):
            return self.DATABASE_URL.replace("postgres://", "postgresql://", 1)
        return self.DATABASE_URL

    @property
    def allowed_origins_list(self) -> List[str]:
        """Configured origins, each host reachable over both http and https"""
        allowed = []
        for entry in filter(None, (part.strip() for part in self.CORS_ORIGINS.split(","))):
            _, has_scheme, host = entry.rpartition("://")
            candidates = [entry] if has_scheme else []
            candidates += [f"https://{host}", f"http://{host}"]
            for origin in candidates:
                if origin not in allowed:
                    allowed.append(origin)
        return allowed

    class Config:
        case_sensitive = True


# Create settings instance
settings = Settings()


# Closed set of marker keys the lab parser may emit
HORMONE_VOCABULARY = (
    "estradiol",
    "progesterone",
    "dhea",
    "free_t3",
    "tsh",
    "free_t4",
    "total_testosterone",
    "free_testosterone",
    "psa",
    "vitamin_d",
    "igf_1",
)


# A real lab text layer mentions at least one of these
CLINICAL_MARKERS = [
    "TSH",
    "Testosterone",
    "Free T3",
    "Vitamin D",
    "Estradiol",
    "DHEA",
    "IGF",
    "PSA",
]


# Boilerplate some scanner software stamps on every physical page
SCANNER_HEADER = "LAB* for"


# Shown in place of a reply when the generation call fails
FALLBACK_REPLY = "There was a problem retrieving a response. Please try again."


# Shown when the reply arrived but the lab entry could not be saved
PERSISTENCE_ALERT = "The response was generated but the lab values could not be saved to the patient record."
