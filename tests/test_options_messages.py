"""
Test Prompt Model
=================

GenerateOptions copying, History bookkeeping and Prediction getters.
"""

import pytest

from core.diagnostics import Diagnostics
from core.messages import History, Message, Prompt, Role
from core.options import GenerateOptions
from core.prediction import Prediction


class TestGenerateOptions:

    def test_copy_is_independent(self):
        original = GenerateOptions(stop=["\n\n"])
        copy = original.copy_for_call()
        copy.stop.append("END")
        copy.temperature = 0.0

        assert original.stop == ["\n\n"], "Deep copy must not share the stop list"
        assert original.temperature == 0.7

    def test_payload_text(self):
        payload = GenerateOptions(temperature=0.1, max_tokens=64).to_payload()
        assert payload == {"temperature": 0.1, "max_tokens": 64, "top_p": 1.0}

    def test_payload_json_schema(self):
        schema = {"type": "object", "properties": {"answer": {"type": "string"}}}
        payload = GenerateOptions(response_format="json", response_schema=schema, stop=["###"]).to_payload()

        assert payload["stop"] == ["###"]
        assert payload["response_format"]["type"] == "json_schema"
        assert payload["response_format"]["json_schema"]["schema"] == schema

    def test_payload_json_object(self):
        payload = GenerateOptions(response_format="json").to_payload()
        assert payload["response_format"] == {"type": "json_object"}

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            GenerateOptions(temperature=5.0)


class TestHistory:

    def test_max_size_keeps_recent(self):
        history = History(max_size=2)
        history.add_system("rules")
        history.add_user("q1")
        history.add_assistant("a1")

        assert [m.content for m in history.messages] == ["q1", "a1"]
        assert len(history) == 2

    def test_last_and_clone(self):
        history = History()
        for i in range(4):
            history.add_user(f"m{i}")

        assert [m.content for m in history.last(2)] == ["m2", "m3"]
        assert len(history.last(10)) == 4

        clone = history.clone()
        clone.add_user("extra")
        assert len(history) == 4, "Clone must not share storage"

    def test_clear(self):
        history = History(messages=[Message(role=Role.USER, content="hi")])
        assert not history.is_empty()
        history.clear()
        assert history.is_empty()


class TestPrompt:

    def test_as_dicts(self):
        prompt = Prompt(messages=[Message(role=Role.SYSTEM, content="s"), Message(role=Role.USER, content="u")])
        assert prompt.as_dicts() == [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]
        assert prompt.last_content == "u"


class TestPrediction:

    def test_typed_getters(self):
        pred = Prediction(outputs={"name": "x", "count": 3, "score": 0.5, "flag": True, "whole": 2.0})

        assert pred.get_str("name") == "x"
        assert pred.get_str("count") is None
        assert pred.get_int("count") == 3
        assert pred.get_int("whole") == 2
        assert pred.get_int("flag") is None, "bool is not an int"
        assert pred.get_float("count") == 3.0
        assert pred.get_bool("flag") is True
        assert pred.get("missing", "default") == "default"

    def test_provenance_copy(self):
        pred = Prediction(outputs={"a": "1"}, adapter_used="ChatAdapter")
        moved = pred.with_provenance("JSONAdapter", 2, True)

        assert pred.adapter_used == "ChatAdapter", "Predictions are immutable"
        assert moved.adapter_used == "JSONAdapter"
        assert moved.fallback_used and moved.parse_attempts == 2

    def test_parse_success(self):
        assert Prediction().parse_success
        assert not Prediction(diagnostics=Diagnostics(missing_fields=["a"])).parse_success
