"""Configuration and environment settings for the Finance Ledger API."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the Finance Ledger API."""

    groq_api_key: str | None = None
    groq_model: str = "llama-3.3-70b-versatile"
    groq_temperature: float = 0.2
    groq_max_completion_tokens: int = 4096
    groq_top_p: float = 0.95
    groq_stream: bool = True
    groq_stop: list[str] | None = None
    llm_agent: str = "groq"
    database_url: str = "sqlite:///data/transactions.db"
    upload_dir: str = "data/uploads"
    max_upload_size: int = 10 * 1024 * 1024
    log_file: str = "data/finance_ledger.log"
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def ai_enabled(self) -> bool:
        """Whether an LLM key is configured for categorization, insights and chat."""
        return bool(self.groq_api_key)


def get_settings() -> "Settings":
    """Return an instance of the application settings."""
    return Settings()
