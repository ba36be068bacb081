from dataclasses import dataclass
import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "y"}


@dataclass
class Settings:
    llm_model: str = os.getenv("LLM_MODEL", os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    llm_timeout_s: float = float(os.getenv("LLM_TIMEOUT_S", "60"))
    llm_max_retries: int = int(os.getenv("LLM_MAX_RETRIES", "2"))
    api_key: str | None = os.getenv("OPENAI_API_KEY")
    api_base: str | None = os.getenv("OPENAI_API_BASE")

    analysis_max_tokens: int = int(os.getenv("ANALYSIS_MAX_TOKENS", "4096"))
    analysis_temperature: float = float(os.getenv("ANALYSIS_TEMPERATURE", "0.3"))
    chat_max_tokens: int = int(os.getenv("CHAT_MAX_TOKENS", "4096"))
    chat_temperature: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
    max_document_chars: int = int(os.getenv("MAX_DOCUMENT_CHARS", "20000"))

    embed_model: str = os.getenv("EMBED_MODEL", "text-embedding-3-large")
    legislation_index_dir: str | None = os.getenv("LEGISLATION_INDEX_DIR")
    use_legislation_search: bool = _flag("USE_LEGISLATION_SEARCH", "true")

    store_dir: str = os.getenv("STORE_DIR", ".cache/store")
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "*")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
