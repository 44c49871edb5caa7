"""Async OpenAI client — ALL LLM calls go through here."""

from openai import AsyncOpenAI

from depmigrator.config import active_model, settings


def _create_client() -> AsyncOpenAI:
    """Create an async OpenAI client (or an Ollama-compatible one)."""
    if settings.use_local_llm:
        return AsyncOpenAI(
            base_url=settings.ollama_base_url,
            api_key="ollama",
        )
    return AsyncOpenAI(api_key=settings.openai_api_key)


def get_client() -> AsyncOpenAI:
    """Create a fresh client with API key validation."""
    if not settings.use_local_llm and not settings.openai_api_key:
        msg = (
            "DEPMIGRATOR_OPENAI_API_KEY is required when not using local LLM. "
            "Set the env var or use DEPMIGRATOR_USE_LOCAL_LLM=true for Ollama."
        )
        raise ValueError(msg)
    return _create_client()


async def generate_text(prompt: str) -> str:
    """Send a single-prompt completion and return the raw text."""
    client = get_client()
    response = await client.chat.completions.create(
        model=active_model(),
        messages=[{"role": "user", "content": prompt}],
    )
    return response.choices[0].message.content or ""
