"""
Test Fallback Adapter
=====================

Strategy ordering, provenance, and strict/partial chain failures.
"""

import pytest

from adapters.chat_adapter import ChatAdapter
from adapters.fallback_adapter import FallbackAdapter, build_fallback_adapter
from adapters.json_adapter import JSONAdapter
from core.config import AdapterConfig
from core.errors import AllStrategiesFailed, ContractDefinitionError, InvalidEnumValue
from core.validation import ValidationMode


@pytest.fixture
def adapter():
    return FallbackAdapter()


class TestOrdering:

    def test_first_strategy_wins(self, adapter, qa_signature):
        pred = adapter.parse(qa_signature, "[[ ## answer ## ]]\n4")

        assert pred.adapter_used == "ChatAdapter"
        assert pred.parse_attempts == 1
        assert not pred.fallback_used
        assert pred.parse_success

    def test_second_strategy_used_once(self, adapter, sentiment_signature):
        """A response only JSON can read is reported as one bypass."""
        pred = adapter.parse(sentiment_signature, '{"sentiment": "negative", "confidence": 0.2}')

        assert pred.outputs == {"sentiment": "negative", "confidence": 0.2}
        assert pred.adapter_used == "JSONAdapter"
        assert pred.parse_attempts == 2
        assert pred.fallback_used
        assert not pred.parse_success

    def test_custom_order(self, sentiment_signature):
        adapter = FallbackAdapter([JSONAdapter(), ChatAdapter()])
        pred = adapter.parse(sentiment_signature, "Sentiment: POSITIVE (high confidence)")

        assert pred.adapter_used == "ChatAdapter"
        assert pred.fallback_used
        assert pred.outputs == {"sentiment": "positive", "confidence": 0.9}

    def test_fewest_errors_selected(self, adapter, sentiment_signature):
        """With no clean result, the partial result beats the total failure."""
        pred = adapter.parse(sentiment_signature, '{"sentiment": "ecstatic"}', ValidationMode.PARTIAL)

        assert pred.adapter_used == "JSONAdapter"
        assert pred.parse_attempts == 2
        assert "sentiment" in pred.diagnostics.class_errors
        assert not pred.diagnostics.is_parse_failure

    def test_label_inside_json_value_is_not_reasoning(self, adapter, qa_signature):
        """A JSON value containing "reaction:" is not mistaken for a reasoning loop."""
        pred = adapter.parse(qa_signature, '{"answer": "Their reaction: mostly positive overall"}')

        assert pred.adapter_used == "JSONAdapter"
        assert pred.fallback_used
        assert pred.outputs == {"answer": "Their reaction: mostly positive overall"}

    def test_format_uses_first_strategy(self, adapter, qa_signature):
        prompt = adapter.format(qa_signature, {"question": "2+2?"})
        assert "[[ ## answer ## ]]" in prompt.last_content

    def test_empty_chain_rejected(self):
        with pytest.raises(ContractDefinitionError):
            FallbackAdapter([])


class TestStrictFailures:

    def test_all_strategies_failed(self, adapter, sentiment_signature):
        raw = "I have no idea what you mean."
        with pytest.raises(AllStrategiesFailed) as exc:
            adapter.parse(sentiment_signature, raw)

        failures = exc.value.failures
        assert [name for name, _ in failures] == ["ChatAdapter", "JSONAdapter"]
        assert exc.value.raw_text == raw
        assert exc.value.last_failure[0] == "JSONAdapter"
        assert "ChatAdapter" in str(exc.value) and "JSONAdapter" in str(exc.value)

    def test_contract_error_propagates(self, adapter, sentiment_signature):
        """A parseable response violating the contract raises the contract error itself."""
        with pytest.raises(InvalidEnumValue):
            adapter.parse(sentiment_signature, '{"sentiment": "ecstatic"}')


class TestPartialNeverThrows:

    @pytest.mark.parametrize("raw", [
        "",
        "   ",
        "garbage }{ ][",
        '{"sentiment": ',
        "[[ ## sentiment ## ]]",
        "[[ ## confidence ## ]]\nnot a number",
        '{"sentiment": ["a", "b"], "confidence": {"x": 1}}',
        "\x00\x01 binary-ish",
        pytest.param('{"sentiment": ' + "[" * 100000 + "]" * 100000 + "}", id="deep-nesting"),
        pytest.param("{" * 20000, id="unclosed-braces"),
    ])
    def test_malformed_inputs(self, adapter, sentiment_signature, raw):
        pred = adapter.parse(sentiment_signature, raw, ValidationMode.PARTIAL)

        assert pred is not None
        assert pred.diagnostics.has_errors, f"Diagnostics should be populated for {raw!r}"

    def test_total_failure_lists_every_strategy(self, adapter, qa_signature):
        pred = adapter.parse(qa_signature, "{ broken", ValidationMode.PARTIAL)

        assert pred.diagnostics.is_parse_failure
        assert "ChatAdapter" in pred.diagnostics.parse_error
        assert "JSONAdapter" in pred.diagnostics.parse_error
        assert pred.outputs == {"answer": None}


class TestConfig:

    def test_from_config(self):
        config = AdapterConfig(fallback_chain=["json"], include_reasoning=True)
        adapter = FallbackAdapter.from_config(config)

        assert [a.name for a in adapter.adapters] == ["JSONAdapter"]
        assert adapter.primary.include_reasoning

    def test_reasoning_markers_passed_to_chat(self):
        config = AdapterConfig(reasoning_markers=["plan", "step"])
        adapter = build_fallback_adapter(config)
        assert adapter.adapters[0].detector.labels == ["plan", "step"]

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            FallbackAdapter.from_config(AdapterConfig(fallback_chain=["xml"]))

    def test_config_mode_is_default_parse_mode(self, sentiment_signature):
        adapter = FallbackAdapter.from_config(AdapterConfig(validation_mode=ValidationMode.PARTIAL))
        assert adapter.mode == ValidationMode.PARTIAL

        pred = adapter.parse(sentiment_signature, "I have no idea what you mean.")
        assert pred.diagnostics.is_parse_failure

        with pytest.raises(AllStrategiesFailed):
            adapter.parse(sentiment_signature, "I have no idea what you mean.", ValidationMode.STRICT)

    def test_strict_by_default(self, adapter):
        assert adapter.mode == ValidationMode.STRICT
