"""
Adapter Configuration
=====================

Settings for the adapter layer, read from the environment (and a local
.env file when present).

Environment variables:
    CONTRACT_VALIDATION_MODE     strict | partial (default: strict)
    CONTRACT_FALLBACK_CHAIN      comma list of adapters (default: chat,json)
    CONTRACT_INCLUDE_REASONING   request a reasoning field (default: false)
    CONTRACT_DEBUG_PARSE         log raw previews of failed parses (default: false)
    CONTRACT_REASONING_MARKERS   comma list of reasoning-loop scaffold labels
                                 (default: thought,action,observation)
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from core.validation import ValidationMode

logger = logging.getLogger(__name__)

KNOWN_ADAPTERS = ("chat", "json")
DEFAULT_REASONING_MARKERS = ["thought", "action", "observation"]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


@dataclass
class AdapterConfig:
    """
    Configuration for building adapters.

    Example:
        >>> config = AdapterConfig(validation_mode=ValidationMode.PARTIAL)
        >>> config.validate()
        >>> adapter = FallbackAdapter.from_config(config)
    """
    validation_mode: ValidationMode = ValidationMode.STRICT
    fallback_chain: List[str] = field(default_factory=lambda: list(KNOWN_ADAPTERS))
    include_reasoning: bool = False
    debug_parse: bool = False
    reasoning_markers: List[str] = field(default_factory=lambda: list(DEFAULT_REASONING_MARKERS))

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "AdapterConfig":
        """Build a config from environment variables (loading .env first)."""
        load_dotenv(dotenv_path)

        mode = os.getenv("CONTRACT_VALIDATION_MODE", ValidationMode.STRICT.value).strip().lower()
        try:
            validation_mode = ValidationMode(mode)
        except ValueError:
            raise ValueError(f"CONTRACT_VALIDATION_MODE must be 'strict' or 'partial', got {mode!r}")

        config = cls(
            validation_mode=validation_mode,
            fallback_chain=_env_list("CONTRACT_FALLBACK_CHAIN", list(KNOWN_ADAPTERS)),
            include_reasoning=_env_bool("CONTRACT_INCLUDE_REASONING", False),
            debug_parse=_env_bool("CONTRACT_DEBUG_PARSE", False),
            reasoning_markers=_env_list("CONTRACT_REASONING_MARKERS", DEFAULT_REASONING_MARKERS),
        )
        config.validate()
        logger.debug(f"[AdapterConfig] Loaded from env: chain={config.fallback_chain} mode={config.validation_mode.value}")
        return config

    def validate(self):
        """
        Check the configuration for consistency.

        Raises:
            ValueError: If a setting is out of range
        """
        if not self.fallback_chain:
            raise ValueError("fallback_chain must name at least one adapter")
        unknown = [name for name in self.fallback_chain if name not in KNOWN_ADAPTERS]
        if unknown:
            raise ValueError(f"Unknown adapters in fallback_chain: {unknown}. Known: {list(KNOWN_ADAPTERS)}")
        if not self.reasoning_markers:
            raise ValueError("reasoning_markers must not be empty")
