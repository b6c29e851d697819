"""
LLM Providers
"""
from .base import LanguageModel
from .openrouter import OpenRouterProvider, OpenRouterError

__all__ = ['LanguageModel', 'OpenRouterProvider', 'OpenRouterError']
