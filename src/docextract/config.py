"""Configuration management for the document field extraction pipeline."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Schema matching
    fuzzy_max_distance: int = 3
    default_element_type: str = "CUSTOM"
    default_element_category: str = "GENERAL"

    # LLM classification and TFN scan
    llm_model: str = "gpt-4o"
    llm_temperature: float = 0.2
    tfn_temperature: float = 0.1
    llm_max_text_chars: int = 8000

    # Entity, language and sentiment detection (provider request limit is 5000 bytes)
    entity_sample_max_bytes: int = 4800
    default_language_code: str = "en"

    # Redaction
    redaction_padding: int = 2

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "DOCEXTRACT_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
