"""Quill configuration — loaded from environment variables."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "QUILL_", "env_file": ".env"}

    # LLM API keys
    openai_api_key: str = ""
    google_api_key: str = ""
    anthropic_api_key: str = ""

    # Generation
    default_model: str = "gpt-4o"
    request_timeout: float = 120.0
    persona_name: str = "Orhan"
    # JSON file replacing the built-in style policies (empty = built-ins)
    policy_file: str = ""

    # PDFs: "attach" forwards the bytes to the provider (needs native document
    # support), "placeholder" tells the model the text was not extracted.
    pdf_mode: Literal["attach", "placeholder"] = "attach"
    # Other unreadable uploads: "skip" drops them, "note" leaves a marker.
    unsupported_mode: Literal["skip", "note"] = "skip"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"


settings = Settings()
