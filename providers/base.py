"""
Language Model Interface
========================

The generation collaborator used by the two-step adapter's extraction
phase. Any backend able to turn messages into text can implement it.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from core.messages import Message
from core.options import GenerateOptions


class LanguageModel(ABC):
    """Generation backend: ordered messages in, response text out."""

    name: str = "LanguageModel"

    @abstractmethod
    def generate(self, messages: List[Message], options: Optional[GenerateOptions] = None) -> str:
        """
        Generate a response.

        Args:
            messages: Ordered prompt messages
            options: Sampling/format options (not mutated)

        Returns:
            Response text
        """
        pass
