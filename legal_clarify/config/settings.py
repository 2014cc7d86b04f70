from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, SecretStr

class Settings(BaseSettings):
    """Loads and validates all application settings from the environment or a .env file."""
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        populate_by_name=True,
    )

    # A missing key surfaces as NotConfiguredError when a request is made.
    google_api_key: Optional[SecretStr] = Field(None, alias='GOOGLE_GENERATIVE_AI_API_KEY')

    analysis_model: str = Field('gemini-2.0-flash', alias='ANALYSIS_MODEL')
    chat_model: str = Field('gemini-2.5-flash', alias='CHAT_MODEL')
    analysis_mode: Literal['structured', 'free_text'] = Field('structured', alias='ANALYSIS_MODE')

    analysis_temperature: float = Field(0.1, alias='ANALYSIS_TEMPERATURE')
    chat_temperature: float = Field(0.7, alias='CHAT_TEMPERATURE')
    max_output_tokens: int = Field(2000, alias='MAX_OUTPUT_TOKENS')

    max_document_chars: int = Field(8000, alias='MAX_DOCUMENT_CHARS')
    max_upload_bytes: int = Field(10 * 1024 * 1024, alias='MAX_UPLOAD_BYTES')

    analysis_timeout_seconds: float = Field(60.0, alias='ANALYSIS_TIMEOUT_SECONDS')
    chat_timeout_seconds: float = Field(30.0, alias='CHAT_TIMEOUT_SECONDS')

    log_level: str = Field('INFO', alias='LOG_LEVEL')

    @property
    def is_configured(self) -> bool:
        return bool(self.google_api_key and self.google_api_key.get_secret_value().strip())

# Create a single, importable instance of the settings
settings = Settings()
