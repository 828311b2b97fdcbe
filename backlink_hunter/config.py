from __future__ import annotations
import os
from dataclasses import dataclass

def _as_bool(v: str | None, default: bool = False) -> bool:
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")

@dataclass
class Settings:
    # Ollama / models
    ollama_base: str = os.getenv("OLLAMA_BASE_URL", "http://127.0.0.1:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "qwen3:8b")
    ollama_think: bool = _as_bool(os.getenv("OLLAMA_THINK"), False)
    llm_timeout: int = int(os.getenv("LLM_TIMEOUT_SECONDS", "120"))

    # Agent loop
    max_turns: int = int(os.getenv("AGENT_MAX_TURNS", "10"))
    max_tokens: int = int(os.getenv("AGENT_MAX_TOKENS", "4096"))

    # Every outbound provider call carries this timeout
    http_timeout: int = int(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))

    # Web search
    online_search: bool = _as_bool(os.getenv("ONLINE_SEARCH"), True)
    search_max_results: int = int(os.getenv("SEARCH_MAX_RESULTS", "10"))

    # Discovery
    discovery_locale: str = os.getenv("DISCOVERY_LOCALE", "UK")
    discovery_max_queries: int = int(os.getenv("DISCOVERY_MAX_QUERIES", "20"))

    # ---- Providers (unset = unconfigured, adapters return empty results) ----
    dataforseo_login: str | None = os.getenv("DATAFORSEO_LOGIN") or None
    dataforseo_password: str | None = os.getenv("DATAFORSEO_PASSWORD") or None
    hunter_api_key: str | None = os.getenv("HUNTER_API_KEY") or None

    @property
    def metrics_configured(self) -> bool:
        return bool(self.dataforseo_login and self.dataforseo_password)

    @property
    def contacts_configured(self) -> bool:
        return bool(self.hunter_api_key)

_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
