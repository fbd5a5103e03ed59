"""
Unit tests for client/canonical.py -- canonical parameter strings.

Expected strings are fixed fixtures: the server recomputes them byte for byte.
"""

import pytest

from client.canonical import (
    build_auth_meta,
    canonical_string,
    canonicalize,
    encode_component,
    merge_params,
    stringify_value,
)
from client.errors import EncodingError

TS = 1700000000


class TestStringifyValue:
    def test_booleans_are_literal_words(self):
        assert stringify_value(True) == "true"
        assert stringify_value(False) == "false"

    def test_ints_have_no_grouping(self):
        assert stringify_value(5) == "5"
        assert stringify_value(-42) == "-42"
        assert stringify_value(1234567890) == "1234567890"

    def test_integral_floats_drop_fraction(self):
        assert stringify_value(5.0) == "5"
        assert stringify_value(0.0) == "0"
        assert stringify_value(1e20) == "100000000000000000000"

    def test_fractional_floats_use_shortest_digits(self):
        assert stringify_value(0.1) == "0.1"
        assert stringify_value(-2.5) == "-2.5"
        assert stringify_value(1234567.5) == "1234567.5"

    def test_small_floats_stay_positional(self):
        """repr() would give 1e-05; the wire form has no exponent."""
        assert stringify_value(1e-05) == "0.00001"
        assert stringify_value(0.000123) == "0.000123"

    def test_strings_unchanged(self):
        assert stringify_value("play_money") == "play_money"
        assert stringify_value("") == ""

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_floats_rejected(self, value):
        with pytest.raises(EncodingError):
            stringify_value(value)

    @pytest.mark.parametrize("value", [1e21, 1e-7])
    def test_exponent_only_floats_rejected(self, value):
        with pytest.raises(EncodingError, match="positional"):
            stringify_value(value)

    @pytest.mark.parametrize("value", [[1, 2], {"a": 1}, b"raw", None, object()])
    def test_non_scalars_rejected(self, value):
        with pytest.raises(EncodingError, match="unsupported type"):
            stringify_value(value)


class TestEncodeComponent:
    def test_unreserved_pass_through(self):
        assert encode_component("AZaz09-_.!~*'()") == "AZaz09-_.!~*'()"

    def test_space_is_percent_20(self):
        assert encode_component("us election") == "us%20election"

    def test_reserved_use_uppercase_hex(self):
        assert encode_component("/?&=+:,;@#$") == "%2F%3F%26%3D%2B%3A%2C%3B%40%23%24"

    def test_utf8_multibyte(self):
        assert encode_component("é") == "%C3%A9"
        assert encode_component("€") == "%E2%82%AC"

    def test_lone_surrogate_rejected(self):
        with pytest.raises(EncodingError):
            encode_component("\ud800")


class TestMergeParams:
    def test_auth_meta_only(self):
        params = merge_params(build_auth_meta("pub", TS))
        assert params == {"Key": "pub", "Timestamp": "1700000000"}

    def test_body_overrides_query(self):
        params = merge_params(build_auth_meta("pub", TS), {"limit": 10}, {"limit": 20})
        assert params["limit"] == "20"

    def test_query_overrides_auth_meta(self):
        params = merge_params(build_auth_meta("pub", TS), {"Key": "other"})
        assert params["Key"] == "other"

    def test_none_values_dropped(self):
        params = merge_params(build_auth_meta("pub", TS), {"a": None, "b": 1})
        assert "a" not in params
        assert params["b"] == "1"

    def test_later_none_removes_earlier_value(self):
        params = merge_params(build_auth_meta("pub", TS), {"x": 1}, {"x": None})
        assert "x" not in params

    def test_non_string_key_rejected(self):
        with pytest.raises(EncodingError, match="must be strings"):
            merge_params(build_auth_meta("pub", TS), {1: "a"})

    def test_bad_value_names_the_parameter(self):
        with pytest.raises(EncodingError, match="'categories'"):
            merge_params(build_auth_meta("pub", TS), {"categories": [1, 2]})


class TestCanonicalString:
    def test_ordinal_sort_uppercase_first(self):
        params = {"b": "2", "a": "1", "Timestamp": "1700000000", "Key": "pub"}
        assert canonical_string(params) == "Key=pub&Timestamp=1700000000&a=1&b=2"

    def test_sort_is_by_code_point(self):
        params = {"a": "1", "_": "2", "Z": "3", "B": "4"}
        assert canonical_string(params) == "B=4&Z=3&_=2&a=1"

    def test_insertion_order_irrelevant(self):
        first = canonical_string({"x": "1", "y": "2", "Key": "k"})
        second = canonical_string({"Key": "k", "y": "2", "x": "1"})
        assert first == second

    def test_keys_and_values_encoded(self):
        assert canonical_string({"q s": "x&y"}) == "q%20s=x%26y"

    def test_none_not_rendered(self):
        assert canonical_string({"a": None, "b": "1"}) == "b=1"

    def test_empty_mapping(self):
        assert canonical_string({}) == ""

    def test_non_string_key_rejected(self):
        with pytest.raises(EncodingError):
            canonical_string({1: "a", "b": "c"})


class TestCanonicalize:
    def test_auth_meta_only(self):
        assert canonicalize(build_auth_meta("pub", TS)) == "Key=pub&Timestamp=1700000000"

    def test_query_and_body_merged(self):
        result = canonicalize(
            build_auth_meta("PUB", TS),
            {"limit": 5, "offset": 0},
            {"outcome": 12, "shares": 3.0},
        )
        assert result == "Key=PUB&Timestamp=1700000000&limit=5&offset=0&outcome=12&shares=3"

    def test_body_wins_on_collision(self):
        result = canonicalize(build_auth_meta("pub", TS), {"limit": 10}, {"limit": 20})
        assert "limit=20" in result
        assert "limit=10" not in result

    def test_null_excluded_entirely(self):
        result = canonicalize(build_auth_meta("pub", TS), {"search": None, "live": True})
        assert "search" not in result
        assert result == "Key=pub&Timestamp=1700000000&live=true"

    def test_deterministic(self):
        meta = build_auth_meta("pub", TS)
        query = {"ordering": "-created", "search": "world cup"}
        assert canonicalize(meta, query) == canonicalize(meta, dict(reversed(list(query.items()))))

    def test_inputs_not_mutated(self):
        meta = build_auth_meta("pub", TS)
        query = {"limit": 5}
        body = {"limit": 6}
        canonicalize(meta, query, body)
        assert meta == {"Key": "pub", "Timestamp": TS}
        assert query == {"limit": 5}
        assert body == {"limit": 6}
