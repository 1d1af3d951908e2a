"""
AI Translation Hub dispatch engine

Supported providers:
- Google Gemini (generateContent, key in query string)
- OpenAI (chat completions, bearer auth)
- Anthropic Claude (messages API, automatic model fallback)
"""
from .base import BaseProvider, ModelInfo, ProviderConfig, ProviderKind, TranslationRequest
from .catalog import ModelCatalogManager, select_best_model, sort_models
from .claude import ClaudeProvider
from .engine import DispatchContext, DispatchEngine
from .errors import CatalogError, ConfigurationError, ErrorKind, TranslationError, TranslationInterrupted
from .factory import AVAILABLE_ENGINES, build_provider_config, get_available_engines, get_provider
from .fallback import ModelFallbackSwitcher
from .gemini import GeminiProvider
from .openai import OpenAIProvider
from .retry import AttemptInfo, RetryController
from .transport import AiohttpTransport, HttpResponse, HttpTransport, ProviderRequest

__all__ = [
    "AVAILABLE_ENGINES",
    "AiohttpTransport",
    "AttemptInfo",
    "BaseProvider",
    "CatalogError",
    "ClaudeProvider",
    "ConfigurationError",
    "DispatchContext",
    "DispatchEngine",
    "ErrorKind",
    "GeminiProvider",
    "HttpResponse",
    "HttpTransport",
    "ModelCatalogManager",
    "ModelFallbackSwitcher",
    "ModelInfo",
    "OpenAIProvider",
    "ProviderConfig",
    "ProviderKind",
    "ProviderRequest",
    "RetryController",
    "TranslationError",
    "TranslationInterrupted",
    "TranslationRequest",
    "build_provider_config",
    "get_available_engines",
    "get_provider",
    "select_best_model",
    "sort_models",
]
