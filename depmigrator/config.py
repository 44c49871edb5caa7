"""Application configuration via pydantic-settings with DEPMIGRATOR_ env prefix."""

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load .env into os.environ so the OpenAI SDK can read it.
load_dotenv(override=False)


class Settings(BaseSettings):
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    use_local_llm: bool = False
    ollama_base_url: str = "http://localhost:11434/v1"
    local_llm_model: str = "llama3.2"
    registry_url: str = "https://registry.npmjs.org"
    registry_timeout: float = 30.0
    max_concurrent_registry_queries: int = 1
    excluded_dirs: list[str] = ["node_modules"]
    log_level: str = "WARNING"

    model_config = {"env_prefix": "DEPMIGRATOR_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()


def active_model() -> str:
    """Return the model name to use for completions based on current config."""
    return settings.local_llm_model if settings.use_local_llm else settings.openai_model
