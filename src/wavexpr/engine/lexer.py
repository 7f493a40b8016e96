# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

r"""
Tokenizer for the formula language.

Token kinds:
  NUMBER  decimal literal: digits and '.', no exponent, no sign ("0.5", "2", ".25")
          that fits a finite float
  IDENT   [A-Za-z_][A-Za-z0-9_]*   (case-sensitive)
  OP      + - * / ^  < > <= >= == != ! && ||
  LPAREN  (
  RPAREN  )
  COMMA   ,

Signs are never part of a number; the parser handles them as prefix operators.
A lone '=' is rejected (only '==' exists), as are a lone '&' or '|'.
"""

import math
import re
from dataclasses import dataclass

from ..errors import ParseError

__all__ = ["Token", "tokenize"]


_TOKEN_SPEC = [
    ("WS", r"\s+"),
    ("NUMBER", r"[0-9.]+"),
    ("IDENT", r"[A-Za-z_][A-Za-z0-9_]*"),
    ("OP", r"<=|>=|==|!=|&&|\|\||[-+*/^<>!]"),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("COMMA", r","),
]
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_SPEC))
_DECIMAL_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)")

_HINTS = {
    "&": "Invalid operator '&' (did you mean '&&'?)",
    "|": "Invalid operator '|' (did you mean '||'?)",
    "=": "Invalid operator '=' (did you mean '=='?)",
}


@dataclass(frozen=True)
class Token:
    """One lexical token; `pos` is the 0-based offset of its first character."""

    kind: str
    value: str | float | None = None
    pos: int = 0
    text: str = ""

    @property
    def end(self) -> int:
        """Offset one past the token's last character."""
        return self.pos + len(self.text)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.kind}:{self.value!r}@{self.pos}"


def tokenize(source: str) -> list[Token]:
    """Split `source` into tokens, raising ParseError on anything unrecognized."""
    out: list[Token] = []
    pos = 0
    n = len(source)
    while pos < n:
        m = _TOKEN_RE.match(source, pos)
        if not m:
            ch = source[pos]
            raise ParseError(_HINTS.get(ch, f"Unexpected character: {ch!r}"), position=pos)
        kind = m.lastgroup or ""
        text = m.group(kind)
        start, pos = pos, m.end()
        if kind == "WS":
            continue
        if kind == "NUMBER":
            if not _DECIMAL_RE.fullmatch(text):
                raise ParseError(f"Invalid number: {text}", position=start)
            value = float(text)
            if not math.isfinite(value):
                raise ParseError(f"Number out of range: {text[:24]}...", position=start)
            out.append(Token(kind, value, start, text))
        else:
            out.append(Token(kind, text, start, text))
    return out
