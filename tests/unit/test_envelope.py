#!/usr/bin/env python3
"""
Unit tests for the envelope codec, classifier and key normalization
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from ttlstore.envelope import (
    CacheEnvelope, Effectiveness, Raw, Structured, as_envelope, classify, decode, encode,
)
from ttlstore.keys import normalize_key

NOW = 1_700_000_000_000


class TestNormalizeKey:

    def test_string_passes_through(self):
        assert normalize_key("user:1") == "user:1"
        assert normalize_key("") == ""

    def test_json_rendering(self):
        assert normalize_key(42) == "42"
        assert normalize_key(None) == "null"
        assert normalize_key(True) == "true"
        assert normalize_key(["user", 1]) == '["user",1]'
        assert normalize_key({"id": 7}) == '{"id":7}'

    def test_tuple_and_list_match(self):
        assert normalize_key(("a", 1)) == normalize_key(["a", 1])

    def test_deterministic(self):
        assert normalize_key({"a": [1, 2]}) == normalize_key({"a": [1, 2]})

    def test_unrenderable_key_raises(self):
        with pytest.raises(TypeError):
            normalize_key(object())

    def test_circular_key_raises(self):
        loop = []
        loop.append(loop)
        with pytest.raises(ValueError):
            normalize_key(loop)


class TestCodec:

    def test_encode_is_compact(self):
        assert encode(CacheEnvelope(e=0, v={"a": 1})) == '{"e":0,"v":{"a":1}}'

    def test_encode_keeps_unicode(self):
        assert encode(CacheEnvelope(e=5, v="héllo")) == '{"e":5,"v":"héllo"}'

    def test_encode_rejects_unserializable(self):
        with pytest.raises(TypeError):
            encode(CacheEnvelope(e=0, v={1, 2}))

    def test_decode_json(self):
        assert decode('{"e":0,"v":[1,2]}') == Structured({"e": 0, "v": [1, 2]})
        assert decode("123") == Structured(123)

    def test_decode_absent(self):
        assert decode(None) == Structured(None)

    def test_decode_garbage_is_raw(self):
        assert decode("hello") == Raw("hello")
        assert decode("{broken") == Raw("{broken")
        assert decode("") == Raw("")

    def test_as_envelope(self):
        env = as_envelope(Structured({"e": 10, "v": "x", "extra": 1}))
        assert env == CacheEnvelope(e=10, v="x")

    def test_as_envelope_rejects_wrong_shapes(self):
        assert as_envelope(Raw("hello")) is None
        assert as_envelope(Structured({"e": 0})) is None
        assert as_envelope(Structured({"v": 0})) is None
        assert as_envelope(Structured([0, 1])) is None
        assert as_envelope(Structured(None)) is None


class TestClassify:

    def test_never_expires(self):
        assert classify(Structured({"e": 0, "v": 1}), NOW) is Effectiveness.VALID

    def test_future_deadline_valid(self):
        assert classify(Structured({"e": NOW + 1, "v": 1}), NOW) is Effectiveness.VALID

    def test_deadline_reached_expired(self):
        assert classify(Structured({"e": NOW, "v": 1}), NOW) is Effectiveness.EXPIRED
        assert classify(Structured({"e": NOW - 1, "v": 1}), NOW) is Effectiveness.EXPIRED

    def test_null_value_still_an_envelope(self):
        assert classify(Structured({"e": 0, "v": None}), NOW) is Effectiveness.VALID

    @pytest.mark.parametrize("decoded", [
        Raw("hello"),
        Structured(None),
        Structured("hello"),
        Structured(42),
        Structured({"e": 0}),
        Structured({"value": 1, "expires": 0}),
    ])
    def test_malformed(self, decoded):
        assert classify(decoded, NOW) is Effectiveness.MALFORMED

    def test_non_numeric_deadline_expired(self):
        assert classify(Structured({"e": "soon", "v": 1}), NOW) is Effectiveness.EXPIRED
        assert classify(Structured({"e": None, "v": 1}), NOW) is Effectiveness.EXPIRED
        assert classify(Structured({"e": False, "v": 1}), NOW) is Effectiveness.EXPIRED

    def test_roundtrip_through_text(self):
        text = encode(CacheEnvelope(e=NOW + 1000, v={"k": [1, "two"]}))
        assert json.loads(text) == {"e": NOW + 1000, "v": {"k": [1, "two"]}}
        assert classify(decode(text), NOW) is Effectiveness.VALID


class TestNonJsonNumbers:

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_encode_rejects(self, value):
        with pytest.raises(ValueError):
            encode(CacheEnvelope(e=0, v={"x": value}))

    @pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity", '{"e":NaN,"v":"legacy"}'])
    def test_decode_keeps_text(self, text):
        assert decode(text) == Raw(text)

    def test_foreign_nan_envelope_is_malformed(self):
        assert classify(decode('{"e":NaN,"v":"legacy"}'), NOW) is Effectiveness.MALFORMED

    def test_nan_key_raises(self):
        with pytest.raises(ValueError):
            normalize_key(float("nan"))


class TestTextDeadlines:

    def test_numeric_text_deadline_in_future(self):
        decoded = decode('{"e":"99999999999999","v":"x"}')
        assert classify(decoded, NOW) is Effectiveness.VALID

    def test_numeric_text_deadline_in_past(self):
        assert classify(Structured({"e": str(NOW - 1), "v": 1}), NOW) is Effectiveness.EXPIRED

    def test_text_zero_is_not_never(self):
        assert classify(Structured({"e": "0", "v": 1}), NOW) is Effectiveness.EXPIRED

    def test_blank_text_deadline_expired(self):
        assert classify(Structured({"e": "", "v": 1}), NOW) is Effectiveness.EXPIRED

    def test_true_deadline_expired(self):
        assert classify(Structured({"e": True, "v": 1}), NOW) is Effectiveness.EXPIRED
