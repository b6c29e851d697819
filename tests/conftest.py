"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.signature import FieldType, Signature


@pytest.fixture
def qa_signature():
    """Single string output: question -> answer."""
    return (
        Signature(description="Answer the question")
        .with_input("question", FieldType.STRING, "The question to answer")
        .with_output("answer", FieldType.STRING, "The answer")
    )


@pytest.fixture
def sentiment_signature():
    """Required enum output plus an optional float score."""
    return (
        Signature(description="Classify the sentiment of a review")
        .with_input("review", FieldType.STRING, "Customer review text")
        .with_class_output(
            "sentiment",
            ["positive", "negative", "neutral"],
            description="Overall sentiment",
            aliases={"pos": "positive", "neg": "negative"},
        )
        .with_optional_output("confidence", FieldType.FLOAT, "Score between 0 and 1")
    )


@pytest.fixture
def mixed_signature():
    """One output of every serializable kind."""
    return (
        Signature(description="Describe an event")
        .with_input("text", FieldType.STRING)
        .with_output("title", FieldType.STRING)
        .with_output("attendees", FieldType.INT)
        .with_output("rating", FieldType.FLOAT)
        .with_output("public", FieldType.BOOL)
        .with_output("details", FieldType.JSON)
        .with_output("starts_at", FieldType.DATETIME)
        .with_class_output("category", ["meetup", "conference", "workshop"])
    )
