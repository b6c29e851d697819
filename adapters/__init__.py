"""
Adapters - prompt formatting and response parsing strategies
"""
from .base import Adapter, PromptAdapter
from .json_adapter import JSONAdapter
from .chat_adapter import ChatAdapter
from .two_step_adapter import TwoStepAdapter
from .fallback_adapter import FallbackAdapter, build_fallback_adapter
from .heuristics import ReasoningLoopDetector

__all__ = [
    'Adapter', 'PromptAdapter', 'JSONAdapter', 'ChatAdapter', 'TwoStepAdapter',
    'FallbackAdapter', 'build_fallback_adapter', 'ReasoningLoopDetector'
]
