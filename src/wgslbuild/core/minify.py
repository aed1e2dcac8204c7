"""WGSL minification: parse, validate, serialize.

This is a token-level minifier. It drops comments and whitespace and
re-joins tokens with the least whitespace that reproduces the same token
sequence. It does not rename identifiers or rewrite expressions, so the
result type-checks whenever the input did.

    minifier = WgslMinifier()
    tokens = minifier.parse(source)
    minifier.validate(tokens)
    output = minifier.serialize(tokens)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class MinifyError(Exception):
    """Shader text could not be tokenized or is structurally invalid."""

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(f"line {line}: {message}" if line is not None else message)
        self.line = line


class TokenKind(StrEnum):
    WORD = "word"
    NUMBER = "number"
    PUNCT = "punct"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    line: int


# Longest operators first so the scanner is greedy
_OPERATORS: tuple[str, ...] = (
    "<<=", ">>=",
    "->", "==", "!=", "<=", ">=", "&&", "||", "<<", ">>", "++", "--",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=",
)
_SINGLE_PUNCT = frozenset("{}()[]<>;:,.@=+-*/%&|^!~?")

_NUMBER = re.compile(
    r"0[xX][0-9a-fA-F]*\.?[0-9a-fA-F]*(?:[pP][+-]?[0-9]+)?[fhiu]?"
    r"|(?:[0-9]+\.[0-9]*|\.[0-9]+|[0-9]+)(?:[eE][+-]?[0-9]+)?[fhiu]?"
)
_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_BRACKETS = {"(": ")", "[": "]", "{": "}"}


class WgslMinifier:
    """Token-level WGSL minifier."""

    def parse(self, source: str) -> list[Token]:
        """Tokenize WGSL source, dropping comments and whitespace.

        Raises:
            MinifyError: On an unterminated block comment or unknown character
        """
        tokens: list[Token] = []
        i = 0
        line = 1
        length = len(source)

        while i < length:
            char = source[i]

            if char == "\n":
                line += 1
                i += 1
                continue
            if char.isspace():
                i += 1
                continue

            if source.startswith("//", i):
                end = source.find("\n", i)
                i = length if end == -1 else end
                continue

            if source.startswith("/*", i):
                i, line = self._skip_block_comment(source, i, line)
                continue

            if char.isdigit() or (char == "." and i + 1 < length and source[i + 1].isdigit()):
                match = _NUMBER.match(source, i)
                # Number regex always matches at least one digit here
                assert match is not None
                tokens.append(Token(TokenKind.NUMBER, match.group(0), line))
                i = match.end()
                continue

            word = _WORD.match(source, i)
            if word is not None:
                tokens.append(Token(TokenKind.WORD, word.group(0), line))
                i = word.end()
                continue

            operator = next((op for op in _OPERATORS if source.startswith(op, i)), None)
            if operator is not None:
                tokens.append(Token(TokenKind.PUNCT, operator, line))
                i += len(operator)
                continue

            if char in _SINGLE_PUNCT:
                tokens.append(Token(TokenKind.PUNCT, char, line))
                i += 1
                continue

            raise MinifyError(f"unexpected character {char!r}", line)

        return tokens

    @staticmethod
    def _skip_block_comment(source: str, start: int, line: int) -> tuple[int, int]:
        # WGSL block comments nest
        depth = 0
        i = start
        while i < len(source):
            if source.startswith("/*", i):
                depth += 1
                i += 2
            elif source.startswith("*/", i):
                depth -= 1
                i += 2
                if depth == 0:
                    return i, line
            else:
                if source[i] == "\n":
                    line += 1
                i += 1
        raise MinifyError("unterminated block comment", line)

    def validate(self, tokens: list[Token]) -> None:
        """Check that (), [] and {} are balanced.

        Angle brackets are not checked: '<' and '>' are also comparison
        operators and cannot be paired without a full parse.

        Raises:
            MinifyError: On the first unbalanced bracket
        """
        stack: list[Token] = []
        closers = {v: k for k, v in _BRACKETS.items()}
        for token in tokens:
            if token.kind is not TokenKind.PUNCT:
                continue
            if token.text in _BRACKETS:
                stack.append(token)
            elif token.text in closers:
                if not stack or stack[-1].text != closers[token.text]:
                    raise MinifyError(f"unbalanced {token.text!r}", token.line)
                stack.pop()
        if stack:
            raise MinifyError(f"unclosed {stack[-1].text!r}", stack[-1].line)

    def serialize(self, tokens: list[Token]) -> str:
        """Join tokens with a space only where they would otherwise merge."""
        out: list[str] = []
        previous: Token | None = None
        for token in tokens:
            if previous is not None and self._needs_space(previous, token):
                out.append(" ")
            out.append(token.text)
            previous = token
        return "".join(out)

    @staticmethod
    def _needs_space(left: Token, right: Token) -> bool:
        if left.kind is not TokenKind.PUNCT and right.kind is not TokenKind.PUNCT:
            return True
        if left.kind is TokenKind.NUMBER and right.text == ".":
            return True
        if left.text == "." and right.kind is TokenKind.NUMBER:
            return True
        if left.kind is TokenKind.PUNCT and right.kind is TokenKind.PUNCT:
            if left.text.endswith("/") and right.text.startswith(("/", "*")):
                return True
            # Re-scanning the joined text must yield the left token first
            joined = left.text + right.text
            first = next((op for op in _OPERATORS if joined.startswith(op)), joined[0])
            return first != left.text
        return False

    def minify(self, source: str) -> str:
        """parse -> validate -> serialize."""
        tokens = self.parse(source)
        self.validate(tokens)
        return self.serialize(tokens)
