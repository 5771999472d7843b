# grammar.py
# L-system grammar: axiom, production rules and parameterized F(len,radius) tokens.

import logging
import math
from typing import Dict, List, NamedTuple, Optional, Tuple

from options import ConfigError

logger = logging.getLogger(__name__)

FORWARD_SYMBOLS = ("F", "X")


class Token(NamedTuple):
    symbol: str
    length_factor: float = 1.0
    radius_factor: float = 1.0
    scaled: bool = False


def _parse_factor(raw: str, text: str) -> float:
    raw = raw.strip()
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Bad segment parameter %r in %r, using 1.0", raw, text)
        return 1.0
    if not math.isfinite(value) or value <= 0.0:
        logger.warning("Segment parameter %r in %r must be a positive number, using 1.0", raw, text)
        return 1.0
    return value


def parse_segment_params(text: str, open_index: int) -> Tuple[float, float, int]:
    """Parse '(len)' or '(len,radius)' starting at the '(' at open_index.

    Returns (length_factor, radius_factor, consumed) where consumed counts the
    characters from '(' through ')' inclusive. Never raises: anything that does
    not parse falls back to 1.0 with a warning.
    """
    if open_index >= len(text) or text[open_index] != "(":
        return 1.0, 1.0, 0

    close = text.find(")", open_index + 1)
    if close < 0:
        logger.warning("Unterminated segment parameters at %d in %r", open_index, text)
        # skip only the '(' so the rest of the string still gets interpreted
        return 1.0, 1.0, 1

    parts = text[open_index + 1:close].split(",")
    if len(parts) > 2:
        logger.warning("Ignoring extra segment parameters in %r", text[open_index:close + 1])

    length_factor = _parse_factor(parts[0], text)
    radius_factor = _parse_factor(parts[1], text) if len(parts) > 1 else 1.0
    return length_factor, radius_factor, close - open_index + 1


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in FORWARD_SYMBOLS and i + 1 < len(text) and text[i + 1] == "(":
            lf, rf, consumed = parse_segment_params(text, i + 1)
            tokens.append(Token(ch, lf, rf, True))
            i += 1 + consumed
            continue
        tokens.append(Token(ch))
        i += 1
    return tokens


class Grammar:
    """Axiom plus symbol -> replacement rules, compiled to token lists once."""

    def __init__(self, axiom: str, rules: Optional[Dict[str, str]] = None):
        if not isinstance(axiom, str):
            raise ConfigError("axiom must be a string")
        self.axiom = axiom
        self.rules: Dict[str, str] = {}
        self._compiled: Dict[str, List[Token]] = {}
        self.axiom_tokens = tokenize(axiom)
        for symbol, replacement in (rules or {}).items():
            self.add_rule(symbol, replacement)

    def add_rule(self, symbol: str, replacement: str) -> None:
        if not isinstance(symbol, str) or len(symbol) != 1:
            raise ConfigError(f"rule symbol must be a single character, got {symbol!r}")
        if not isinstance(replacement, str):
            raise ConfigError(f"rule for {symbol!r} must be a string")
        self.rules[symbol] = replacement
        self._compiled[symbol] = tokenize(replacement)

    def has_rule(self, symbol: str) -> bool:
        return symbol in self._compiled

    def expansion(self, symbol: str) -> Optional[List[Token]]:
        return self._compiled.get(symbol)

    def __repr__(self) -> str:
        return f"Grammar(axiom={self.axiom!r}, rules={self.rules!r})"

