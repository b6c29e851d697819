"""
Test Chat Adapter
=================

Marker formatting, tolerant marker parsing and heuristic extraction.
"""

from datetime import datetime

import pytest

from adapters.chat_adapter import ChatAdapter, section_value, split_marked_sections, strip_markers
from adapters.heuristics import ReasoningLoopDetector
from core.errors import InvalidEnumValue, NoMarkersFound
from core.messages import Example, Role
from core.signature import FieldType, Signature
from core.validation import ValidationMode


@pytest.fixture
def adapter():
    return ChatAdapter()


class TestFormat:

    def test_markers_requested(self, adapter, sentiment_signature):
        prompt = adapter.format(sentiment_signature, {"review": "Meh"})
        content = prompt.last_content

        assert "[[ ## sentiment ## ]]" in content
        assert "[[ ## confidence ## ]]" in content
        assert "One of: positive, negative, neutral" in content
        assert "review (Customer review text): Meh" in content
        assert "[[ ## completed ## ]]" in content

    def test_demos_as_exchanges(self, adapter, qa_signature):
        """Demonstrations become alternating user/assistant messages before the task."""
        demos = [Example(inputs={"question": "1+1?"}, outputs={"answer": "2"})]
        prompt = adapter.format(qa_signature, {"question": "2+2?"}, demos=demos)

        roles = [m.role for m in prompt.messages]
        assert roles == [Role.USER, Role.ASSISTANT, Role.USER]
        assert "question (The question to answer): 1+1?" in prompt.messages[0].content
        assert prompt.messages[1].content.startswith("[[ ## answer ## ]]\n2")

    def test_options_untouched(self, adapter, qa_signature):
        prompt = adapter.format(qa_signature, {"question": "2+2?"})
        assert prompt.options.response_format == "text"


class TestMarkerParsing:

    def test_basic_markers(self, adapter, sentiment_signature):
        raw = "[[ ## sentiment ## ]]\nnegative\n\n[[ ## confidence ## ]]\n0.75\n\n[[ ## completed ## ]]"
        pred = adapter.parse(sentiment_signature, raw)
        assert pred.outputs == {"sentiment": "negative", "confidence": 0.75}

    @pytest.mark.parametrize("marker", [
        "[[ ## answer ## ]]",
        "[[## answer ##]]",
        "[[##answer##]]",
        "[[ ## answer ##",
        "[[ ## ANSWER ## ]]",
    ])
    def test_tolerant_marker_variants(self, adapter, qa_signature, marker):
        pred = adapter.parse(qa_signature, f"{marker}\n4")
        assert pred.get_str("answer") == "4", f"Marker variant {marker!r} should parse"

    def test_class_field_keeps_first_word(self, adapter, sentiment_signature):
        raw = "[[ ## sentiment ## ]]\n**Positive** - the reviewer loved it\n"
        assert adapter.parse(sentiment_signature, raw).get_str("sentiment") == "positive"

    def test_numeric_portion_kept(self, adapter):
        sig = Signature().with_output("score", FieldType.INT)
        pred = adapter.parse(sig, "[[ ## score ## ]]\n8 out of 10\n\nBecause reasons.")
        assert pred.get_int("score") == 8

    def test_json_field(self, adapter):
        sig = Signature().with_output("data", FieldType.JSON)
        pred = adapter.parse(sig, '[[ ## data ## ]]\n{"a": [1, 2]}\n[[ ## completed ## ]]')
        assert pred.get("data") == {"a": [1, 2]}

    def test_invalid_class_strict(self, adapter, sentiment_signature):
        with pytest.raises(InvalidEnumValue):
            adapter.parse(sentiment_signature, "[[ ## sentiment ## ]]\necstatic")

    def test_split_and_strip_helpers(self):
        sections = split_marked_sections("[[ ## a ## ]]\nx\n[[ ## b ## ]] y [[ ## completed ## ]]")
        assert sections == {"a": "x", "b": "y"}
        assert strip_markers("value [[ ## completed ## ]]") == "value"


class TestHeuristics:

    def test_sentiment_scenario(self, adapter, sentiment_signature):
        """Unmarked label text yields the enum value and a qualitative confidence."""
        pred = adapter.parse(sentiment_signature, "Sentiment: POSITIVE (high confidence)")

        assert pred.outputs == {"sentiment": "positive", "confidence": 0.9}
        assert not pred.diagnostics.has_errors, pred.diagnostics.summary()

    def test_synonym_label(self, adapter, qa_signature):
        pred = adapter.parse(qa_signature, "Let me think.\n\n**Result:** 42")
        assert pred.get_str("answer") == "42"

    def test_label_on_its_own_line(self, adapter, qa_signature):
        pred = adapter.parse(qa_signature, "Conclusion:\nThe sky scatters blue light.")
        assert pred.get_str("answer") == "The sky scatters blue light."

    def test_reasoning_loop_final_answer(self, adapter, qa_signature):
        """A reasoning loop's announced final answer becomes the answer value."""
        raw = (
            "Thought: I need to add two and two.\n"
            "Action: None (Final Answer)\n"
            "The total is 4"
        )
        assert adapter.parse(qa_signature, raw).get_str("answer") == "The total is 4"

    def test_final_answer_label_stripped(self, adapter, qa_signature):
        raw = "Thought: simple arithmetic\nObservation: none needed\nFinal Answer: 4"
        assert adapter.parse(qa_signature, raw).get_str("answer") == "4"

    def test_missing_marker_filled_heuristically(self, adapter, sentiment_signature):
        raw = "[[ ## sentiment ## ]]\nneutral\n\nConfidence: 0.4"
        pred = adapter.parse(sentiment_signature, raw)
        assert pred.outputs == {"sentiment": "neutral", "confidence": 0.4}

    def test_custom_detector_labels(self, qa_signature):
        """Scaffold labels and final-answer markers are configurable."""
        raw = "Plan: add numbers\nStep: compute 2+2\n=> The sum of the two numbers is 4"

        with pytest.raises(NoMarkersFound):
            ChatAdapter().parse(qa_signature, raw)

        adapter = ChatAdapter(detector=ReasoningLoopDetector(labels=["plan", "step"], final_markers=["=>"]))
        assert adapter.parse(qa_signature, raw).get_str("answer") == "The sum of the two numbers is 4"


class TestFailures:

    def test_no_markers_strict(self, adapter, qa_signature):
        with pytest.raises(NoMarkersFound):
            adapter.parse(qa_signature, '{"answer": "4"}')

    def test_no_markers_partial(self, adapter, qa_signature):
        pred = adapter.parse(qa_signature, "nothing useful here", ValidationMode.PARTIAL)
        assert pred.diagnostics.is_parse_failure
        assert pred.outputs == {"answer": None}

    def test_empty_response_partial(self, adapter, sentiment_signature):
        pred = adapter.parse(sentiment_signature, "", ValidationMode.PARTIAL)
        assert pred.diagnostics.has_errors


class TestRoundTrip:

    def test_render_then_parse(self, adapter, mixed_signature):
        values = {
            "title": "Data workshop",
            "attendees": 30,
            "rating": 0.85,
            "public": False,
            "details": {"room": "B2", "capacity": 40},
            "starts_at": datetime(2024, 6, 3, 9, 0),
            "category": "workshop",
        }
        pred = adapter.parse(mixed_signature, adapter.render_outputs(mixed_signature, values))

        assert pred.outputs == values
        assert not pred.diagnostics.has_errors

    @pytest.mark.parametrize("answer", ["  indented", "", "line one\n    line two"])
    def test_string_whitespace_preserved(self, adapter, qa_signature, answer):
        pred = adapter.parse(qa_signature, adapter.render_outputs(qa_signature, {"answer": answer}))

        assert pred.outputs == {"answer": answer}
        assert not pred.diagnostics.has_errors

    def test_large_int_keeps_every_digit(self, adapter):
        sig = Signature().with_output("count", FieldType.INT)
        pred = adapter.parse(sig, adapter.render_outputs(sig, {"count": 12345678901234567891}))
        assert pred.get_int("count") == 12345678901234567891

    def test_section_value_envelope(self):
        assert section_value("\n  indented\n\n") == "  indented"
        assert section_value("\n\n") == ""
        assert section_value(" inline value ") == "inline value"
