"""Tokenizer for protobuf (.proto) files."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List


class ProtoTokenType(Enum):
    # Keywords
    MESSAGE = auto()
    REPEATED = auto()
    OPTIONAL = auto()
    REQUIRED = auto()
    MAP = auto()
    SYNTAX = auto()
    PACKAGE = auto()
    OPTION = auto()
    RESERVED = auto()
    EXTENSIONS = auto()
    IMPORT = auto()
    ENUM = auto()
    ONEOF = auto()
    SERVICE = auto()
    EXTEND = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LPAREN = auto()
    RPAREN = auto()
    LANGLE = auto()
    RANGLE = auto()
    COMMA = auto()
    SEMICOLON = auto()
    EQUALS = auto()

    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING_LIT = auto()

    # Special
    EOF = auto()


_KEYWORDS = {
    "message": ProtoTokenType.MESSAGE,
    "repeated": ProtoTokenType.REPEATED,
    "optional": ProtoTokenType.OPTIONAL,
    "required": ProtoTokenType.REQUIRED,
    "map": ProtoTokenType.MAP,
    "syntax": ProtoTokenType.SYNTAX,
    "package": ProtoTokenType.PACKAGE,
    "option": ProtoTokenType.OPTION,
    "reserved": ProtoTokenType.RESERVED,
    "extensions": ProtoTokenType.EXTENSIONS,
    "import": ProtoTokenType.IMPORT,
    "enum": ProtoTokenType.ENUM,
    "oneof": ProtoTokenType.ONEOF,
    "service": ProtoTokenType.SERVICE,
    "extend": ProtoTokenType.EXTEND,
}

# Token types that can only ever be identifiers or keywords.
WORD_TOKENS = frozenset(_KEYWORDS.values()) | {ProtoTokenType.IDENT}

_SINGLE_CHAR = {
    "{": ProtoTokenType.LBRACE,
    "}": ProtoTokenType.RBRACE,
    "[": ProtoTokenType.LBRACKET,
    "]": ProtoTokenType.RBRACKET,
    "(": ProtoTokenType.LPAREN,
    ")": ProtoTokenType.RPAREN,
    "<": ProtoTokenType.LANGLE,
    ">": ProtoTokenType.RANGLE,
    ",": ProtoTokenType.COMMA,
    ";": ProtoTokenType.SEMICOLON,
    "=": ProtoTokenType.EQUALS,
}


@dataclass
class ProtoToken:
    type: ProtoTokenType
    value: str
    line: int
    col: int


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def tokenize_proto(text: str) -> List[ProtoToken]:
    """Tokenize a protobuf source string into a list of tokens."""
    tokens: List[ProtoToken] = []
    i = 0
    line = 1
    col = 1
    n = len(text)

    while i < n:
        ch = text[i]

        # Whitespace
        if ch in (" ", "\t", "\r"):
            i += 1
            col += 1
            continue

        if ch == "\n":
            i += 1
            line += 1
            col = 1
            continue

        # Single-line comment
        if ch == "/" and i + 1 < n and text[i + 1] == "/":
            while i < n and text[i] != "\n":
                i += 1
            continue

        # Multi-line comment
        if ch == "/" and i + 1 < n and text[i + 1] == "*":
            i += 2
            col += 2
            while i < n:
                if text[i] == "\n":
                    line += 1
                    col = 1
                elif text[i] == "*" and i + 1 < n and text[i + 1] == "/":
                    i += 2
                    col += 2
                    break
                else:
                    col += 1
                i += 1
            continue

        if ch in _SINGLE_CHAR:
            tokens.append(ProtoToken(_SINGLE_CHAR[ch], ch, line, col))
            i += 1
            col += 1
            continue

        # String literal, single or double quoted
        if ch in ('"', "'"):
            quote = ch
            start_col = col
            i += 1
            col += 1
            start = i
            while i < n and text[i] != quote:
                if text[i] == "\\":
                    i += 1
                    col += 1
                i += 1
                col += 1
            value = text[start:i]
            if i < n:
                i += 1  # consume closing quote
                col += 1
            tokens.append(ProtoToken(ProtoTokenType.STRING_LIT, value, line, start_col))
            continue

        # Number: optional sign, digits, optional fraction and exponent
        if ch.isdigit() or (ch in "-+." and i + 1 < n and text[i + 1].isdigit()):
            start = i
            start_col = col
            i += 1
            col += 1
            while i < n and (text[i].isalnum() or text[i] == "."
                             or (text[i] in "+-" and text[i - 1] in "eE")):
                i += 1
                col += 1
            tokens.append(ProtoToken(ProtoTokenType.NUMBER, text[start:i], line, start_col))
            continue

        # Identifier / keyword, possibly dotted (google.protobuf.Timestamp, .pkg.Foo)
        if _is_ident_start(ch) or (ch == "." and i + 1 < n and _is_ident_start(text[i + 1])):
            start = i
            start_col = col
            i += 1
            col += 1
            while i < n and (text[i].isalnum() or text[i] == "_"
                             or (text[i] == "." and i + 1 < n and _is_ident_start(text[i + 1]))):
                i += 1
                col += 1
            word = text[start:i]
            tok_type = _KEYWORDS.get(word, ProtoTokenType.IDENT)
            tokens.append(ProtoToken(tok_type, word, line, start_col))
            continue

        # Skip any other character
        i += 1
        col += 1

    tokens.append(ProtoToken(ProtoTokenType.EOF, "", line, col))
    return tokens
