# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

r"""
Precedence-climbing parser for the formula language.

Grammar (EBNF-ish):
  expr      := primary { binop expr_{>=prec} }*
  primary   := NUMBER
             | IDENT "(" [ expr { "," expr }* ] ")"
             | IDENT
             | "(" expr ")"
             | "-" primary | "!" primary | "+"primary   (no space after '+')
  binop     := "||" | "&&" | "==" | "!=" | "<" | ">" | "<=" | ">="
             | "+" | "-" | "*" | "/" | "^"

Precedence, low to high: || , && , == != , < > <= >= , + - , * / , ^
Only '^' is right-associative.

Prefix operators take a primary, not an expression, so they bind tighter than
every binary operator: "-2^2" is (-2)^2 == 4.

Parentheses, call arguments, prefix operators and the right operand of "^"
each open one nesting level; past MAX_NESTING levels the parser raises
ParseError instead of exhausting the interpreter stack.
"""

from ..errors import ParseError
from .lexer import Token, tokenize
from .nodes import BinaryOperator, Node, UnaryOperator, binary, call, number, unary, variable

__all__ = ["MAX_NESTING", "parse", "parse_source"]

MAX_NESTING = 200

_EOF = Token("EOF")


class _Parser:
    def __init__(self, tokens: list[Token]):
        self.toks = tokens
        self.i = 0
        self.depth = 0

    def peek(self, offset: int = 0) -> Token:
        j = self.i + offset
        if j >= len(self.toks):
            return _EOF
        return self.toks[j]

    def eat(self, kind: str | None = None, message: str | None = None) -> Token:
        t = self.peek()
        if kind and t.kind != kind:
            raise ParseError(message or f"Expected {kind}, got {t.kind}", position=self._pos(t))
        self.i += 1
        return t

    def _pos(self, t: Token) -> int | None:
        if t is _EOF:
            return self.toks[-1].end if self.toks else 0
        return t.pos

    def parse(self) -> Node:
        node = self.parse_expression(0)
        t = self.peek()
        if t.kind != "EOF":
            raise ParseError("Unexpected tokens after expression", position=t.pos)
        return node

    def descend(self) -> None:
        if self.depth >= MAX_NESTING:
            raise ParseError("Expression too deeply nested", position=self._pos(self.peek()))
        self.depth += 1

    def parse_expression(self, min_precedence: int) -> Node:
        self.descend()
        try:
            return self._expression(min_precedence)
        finally:
            self.depth -= 1

    def _expression(self, min_precedence: int) -> Node:
        left = self.parse_primary()
        while True:
            t = self.peek()
            if t.kind != "OP":
                break
            op = BinaryOperator.from_symbol(t.value)
            if op is None or op.precedence < min_precedence:
                break
            self.eat()
            next_min = op.precedence if op.right_associative else op.precedence + 1
            right = self.parse_expression(next_min)
            left = binary(op, left, right)
        return left

    def parse_primary(self) -> Node:
        t = self.peek()
        if t.kind == "EOF":
            raise ParseError("Unexpected end of expression", position=self._pos(t))
        if t.kind == "NUMBER":
            self.eat()
            return number(t.value)
        if t.kind == "IDENT":
            self.eat()
            if self.peek().kind == "LPAREN":
                return self.parse_call(t.value)
            return variable(t.value)
        if t.kind == "LPAREN":
            self.eat()
            node = self.parse_expression(0)
            self.eat("RPAREN", "Expected ')'")
            return node
        if t.kind == "OP":
            return self.parse_prefix(t)
        raise ParseError(f"Unexpected token: {t.value}", position=t.pos)

    def parse_prefix(self, t: Token) -> Node:
        self.descend()
        try:
            return self._prefix(t)
        finally:
            self.depth -= 1

    def _prefix(self, t: Token) -> Node:
        if t.value == "-":
            self.eat()
            return unary(UnaryOperator.NEGATE, self.parse_primary())
        if t.value == "!":
            self.eat()
            return unary(UnaryOperator.LOGICAL_NOT, self.parse_primary())
        if t.value == "+":
            nxt = self.peek(1)
            # '+' counts as a sign only when glued to its operand ("+3", not "+ 3")
            if nxt.kind != "EOF" and nxt.pos == t.end:
                self.eat()
                return unary(UnaryOperator.PLUS, self.parse_primary())
        raise ParseError(f"Unexpected operator: {t.value}", position=t.pos)

    def parse_call(self, name: str) -> Node:
        self.eat("LPAREN")
        args: list[Node] = []
        if self.peek().kind == "RPAREN":
            self.eat()
            return call(name, args)
        while True:
            args.append(self.parse_expression(0))
            t = self.peek()
            if t.kind == "COMMA":
                self.eat()
                continue
            if t.kind == "RPAREN":
                self.eat()
                return call(name, args)
            if t.kind == "EOF":
                raise ParseError(f"Unclosed call to {name}()", position=self._pos(t))
            raise ParseError("Expected ',' or ')' in function call", position=t.pos)


def parse(tokens: list[Token]) -> Node:
    """Build an AST from a token list, raising ParseError on any structural problem."""
    return _Parser(tokens).parse()


def parse_source(text: str) -> Node:
    """Tokenize and parse formula text in one step."""
    return parse(tokenize(text))
