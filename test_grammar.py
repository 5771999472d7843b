#!/usr/bin/env python3
import logging

import pytest

from grammar import Grammar, Token, parse_segment_params, tokenize
from options import ConfigError


class TestSegmentParams:
    def test_two_params(self) -> None:
        text = "F(2,0.5)+"
        lf, rf, consumed = parse_segment_params(text, 1)
        assert lf == pytest.approx(2.0)
        assert rf == pytest.approx(0.5)
        assert consumed == len("(2,0.5)")

    def test_single_param_scales_length_only(self) -> None:
        lf, rf, consumed = parse_segment_params("F(1.5)", 1)
        assert lf == pytest.approx(1.5)
        assert rf == 1.0
        assert consumed == 5

    def test_whitespace_is_tolerated(self) -> None:
        lf, rf, _ = parse_segment_params("F( 3 , 0.25 )", 1)
        assert lf == pytest.approx(3.0)
        assert rf == pytest.approx(0.25)

    def test_bad_number_defaults_to_one(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="grammar"):
            lf, rf, consumed = parse_segment_params("F(abc,0.5)", 1)
        assert lf == 1.0
        assert rf == pytest.approx(0.5)
        assert consumed == len("(abc,0.5)")
        assert "abc" in caplog.text

    def test_empty_params(self) -> None:
        lf, rf, consumed = parse_segment_params("F()", 1)
        assert (lf, rf, consumed) == (1.0, 1.0, 2)

    def test_non_positive_rejected(self) -> None:
        lf, rf, _ = parse_segment_params("F(-2,0)", 1)
        assert (lf, rf) == (1.0, 1.0)

    def test_unterminated_skips_only_paren(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="grammar"):
            lf, rf, consumed = parse_segment_params("F(2,0.5+F", 1)
        assert (lf, rf, consumed) == (1.0, 1.0, 1)
        assert "Unterminated" in caplog.text

    def test_extra_params_ignored(self) -> None:
        lf, rf, consumed = parse_segment_params("F(2,3,4)", 1)
        assert (lf, rf) == (pytest.approx(2.0), pytest.approx(3.0))
        assert consumed == len("(2,3,4)")

    def test_not_at_paren(self) -> None:
        assert parse_segment_params("F+", 1) == (1.0, 1.0, 0)


class TestTokenize:
    def test_plain_symbols(self) -> None:
        assert [t.symbol for t in tokenize("F[+F]")] == ["F", "[", "+", "F", "]"]
        assert not any(t.scaled for t in tokenize("F[+F]"))

    def test_parameterized_token(self) -> None:
        tokens = tokenize("F(2,0.5)[+X(0.5)]")
        assert tokens[0] == Token("F", 2.0, 0.5, True)
        assert [t.symbol for t in tokens] == ["F", "[", "+", "X", "]"]
        assert tokens[3].length_factor == pytest.approx(0.5)
        assert tokens[3].radius_factor == 1.0

    def test_paren_after_non_forward_symbol_is_plain(self) -> None:
        assert [t.symbol for t in tokenize("+(2)")] == ["+", "(", "2", ")"]

    def test_unterminated_keeps_following_symbols(self) -> None:
        symbols = [t.symbol for t in tokenize("F(2F")]
        assert symbols == ["F", "2", "F"]


class TestGrammar:
    def test_rules_compiled(self) -> None:
        g = Grammar("F", {"F": "F[+F]"})
        assert g.has_rule("F")
        assert not g.has_rule("X")
        assert [t.symbol for t in g.expansion("F")] == ["F", "[", "+", "F", "]"]
        assert g.expansion("X") is None

    def test_multichar_rule_key(self) -> None:
        with pytest.raises(ConfigError):
            Grammar("F", {"FF": "F"})

    def test_non_string_replacement(self) -> None:
        with pytest.raises(ConfigError):
            Grammar("F", {"F": 3})  # type: ignore[dict-item]

    def test_add_rule_replaces(self) -> None:
        g = Grammar("F", {"F": "FF"})
        g.add_rule("F", "F+F")
        assert g.rules == {"F": "F+F"}

