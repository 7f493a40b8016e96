# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
AST for the formula language.

A single immutable node type tagged by `kind`:
  NUM     value=float
  VAR     value=name
  UNARY   value=UnaryOperator, children=(operand,)
  BINARY  value=BinaryOperator, children=(left, right)
  CALL    value=function name, children=args (possibly empty)

Every parse builds a fresh tree; nodes never share children.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

__all__ = [
    "BinaryOperator",
    "Node",
    "UnaryOperator",
    "binary",
    "call",
    "number",
    "unary",
    "variable",
]


class UnaryOperator(str, Enum):
    NEGATE = "-"
    LOGICAL_NOT = "!"
    PLUS = "+"


class BinaryOperator(str, Enum):
    """Binary operators with their fixed precedence (higher binds tighter)."""

    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POWER = "^"
    LESS = "<"
    GREATER = ">"
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    EQUAL = "=="
    NOT_EQUAL = "!="
    LOGICAL_AND = "&&"
    LOGICAL_OR = "||"

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]

    @property
    def right_associative(self) -> bool:
        return self is BinaryOperator.POWER

    @classmethod
    def from_symbol(cls, symbol: str) -> BinaryOperator | None:
        try:
            return cls(symbol)
        except ValueError:
            return None


_PRECEDENCE: dict[BinaryOperator, int] = {
    BinaryOperator.LOGICAL_OR: 1,
    BinaryOperator.LOGICAL_AND: 2,
    BinaryOperator.EQUAL: 3,
    BinaryOperator.NOT_EQUAL: 3,
    BinaryOperator.LESS: 4,
    BinaryOperator.GREATER: 4,
    BinaryOperator.LESS_EQUAL: 4,
    BinaryOperator.GREATER_EQUAL: 4,
    BinaryOperator.ADD: 5,
    BinaryOperator.SUBTRACT: 5,
    BinaryOperator.MULTIPLY: 6,
    BinaryOperator.DIVIDE: 6,
    BinaryOperator.POWER: 7,
}


@dataclass(frozen=True)
class Node:
    """Immutable AST node with small traversal helpers."""

    kind: str
    value: Any = None
    children: tuple[Node, ...] = ()

    def walk(self) -> Iterator[Node]:
        """Pre-order traversal of this node and all descendants."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def variables(self) -> set[str]:
        """Names of every variable/constant referenced in the tree."""
        return {n.value for n in self.walk() if n.kind == "VAR"}

    def functions(self) -> set[str]:
        """Names of every function called in the tree."""
        return {n.value for n in self.walk() if n.kind == "CALL"}

    def to_source(self) -> str:
        """
        Fully parenthesized rendering.

        Parsed trees re-parse to an identical tree as long as the added
        parentheses stay within the parser's nesting limit.
        """
        parts: list[str] = []
        work: list[tuple[Node, bool]] = [(self, False)]
        while work:
            node, ready = work.pop()
            k = node.kind
            if k == "NUM":
                parts.append(np.format_float_positional(float(node.value), trim="-"))
                continue
            if k == "VAR":
                parts.append(str(node.value))
                continue
            if k not in ("UNARY", "BINARY", "CALL"):
                raise ValueError(f"unsupported node kind: {k}")
            if not ready:
                work.append((node, True))
                work.extend((c, False) for c in reversed(node.children))
                continue
            split = len(parts) - len(node.children)
            args = parts[split:]
            del parts[split:]
            if k == "UNARY":
                parts.append(f"{node.value.value}({args[0]})")
            elif k == "BINARY":
                parts.append(f"({args[0]} {node.value.value} {args[1]})")
            else:
                parts.append(f"{node.value}({', '.join(args)})")
        return parts[0]


# ---- constructors


def number(value: float) -> Node:
    return Node("NUM", float(value))


def variable(name: str) -> Node:
    return Node("VAR", name)


def unary(op: UnaryOperator, operand: Node) -> Node:
    return Node("UNARY", op, (operand,))


def binary(op: BinaryOperator, left: Node, right: Node) -> Node:
    return Node("BINARY", op, (left, right))


def call(name: str, args: tuple[Node, ...] | list[Node] = ()) -> Node:
    return Node("CALL", name, tuple(args))
