from typing import ClassVar

from cpadocs.classification.analyzer import DocumentAnalyzer
from cpadocs.classification.base import BaseDocumentAnalyzer
from cpadocs.classification.openai_client_adapter import OpenAIClientAdapter
from cpadocs.config.settings import Settings


class AnalyzerFactory:
    """Creates the configured document analyzer."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentAnalyzer:
        """Create a configured analyzer from application settings."""
        provider = settings.analysis_provider.lower()
        if provider == "keyword":
            return DocumentAnalyzer(client=None, model="keyword")
        client = OpenAIClientAdapter(
            api_key=cls._resolve_api_key(provider, settings),
            timeout_seconds=cls._resolve_timeout_seconds(provider, settings),
            base_url=cls._resolve_base_url(provider, settings),
        )
        return DocumentAnalyzer(
            client=client,
            model=cls._resolve_model_name(provider, settings),
            temperature=cls._resolve_temperature(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.analysis_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "analysis_openai_compatible_base_url is required for "
                    "analysis_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "keyword",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown analysis provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.analysis_openai_api_key,
            "openai_compatible": settings.analysis_openai_compatible_api_key,
            "openrouter": settings.analysis_openrouter_api_key,
            "groq": settings.analysis_groq_api_key,
            "ollama": settings.analysis_ollama_api_key or "ollama",
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.analysis_openai_model_name,
            "openai_compatible": settings.analysis_openai_compatible_model_name,
            "openrouter": settings.analysis_openrouter_model_name,
            "groq": settings.analysis_groq_model_name,
            "ollama": settings.analysis_ollama_model_name,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_timeout_seconds(cls, provider: str, settings: Settings) -> int:
        key_map = {
            "openai": settings.analysis_openai_timeout_seconds,
            "openai_compatible": settings.analysis_openai_compatible_timeout_seconds,
            "openrouter": settings.analysis_openrouter_timeout_seconds,
            "groq": settings.analysis_groq_timeout_seconds,
            "ollama": settings.analysis_ollama_timeout_seconds,
        }
        return key_map.get(provider, 15) or 15

    @classmethod
    def _resolve_temperature(cls, provider: str, settings: Settings) -> float:
        if provider == "openai":
            return settings.analysis_openai_temperature
        return 0.0
