"""Recursive descent parser for protobuf (.proto) files.

Consumes a token stream from proto_tokenizer and produces proto AST nodes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from .proto_ast import ProtoEnum, ProtoField, ProtoFile, ProtoMessage, ProtoOneOf
from .proto_tokenizer import WORD_TOKENS, ProtoToken, ProtoTokenType

_LABELS = {
    ProtoTokenType.REPEATED: "repeated",
    ProtoTokenType.OPTIONAL: "optional",
    ProtoTokenType.REQUIRED: "required",
}


class ProtoParseError(Exception):
    """Raised when the parser encounters unexpected input."""

    def __init__(self, message: str, token: ProtoToken | None = None):
        if token:
            super().__init__(f"Line {token.line}:{token.col}: {message}")
        else:
            super().__init__(message)


def _int_literal(text: str) -> int:
    """Parse a proto integer literal: decimal, 0x hex or leading-zero octal."""
    digits = text.lstrip("+-")
    if digits[:2] in ("0x", "0X"):
        return int(text, 16)
    if len(digits) > 1 and digits[0] == "0":
        return int(text, 8)
    return int(text, 10)


def _literal_value(tok: ProtoToken) -> Any:
    """Convert an option value token into a Python value."""
    if tok.type == ProtoTokenType.STRING_LIT:
        return tok.value
    if tok.type == ProtoTokenType.NUMBER:
        text = tok.value
        try:
            return _int_literal(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            raise ProtoParseError(f"Invalid number {text!r}", tok) from None
    if tok.value == "true":
        return True
    if tok.value == "false":
        return False
    return tok.value


class ProtoParser:
    """Recursive descent parser for .proto files."""

    def __init__(self, tokens: List[ProtoToken]):
        self._tokens = tokens
        self._pos = 0

    # -- public API --

    def parse(self) -> ProtoFile:
        """Parse the full token stream into a ProtoFile AST."""
        result = ProtoFile()

        while not self._at_end():
            tt = self._peek().type

            if tt == ProtoTokenType.MESSAGE:
                result.messages.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                result.enums.append(self._parse_enum())
            elif tt == ProtoTokenType.SYNTAX:
                self._advance()
                self._expect(ProtoTokenType.EQUALS)
                result.syntax = self._expect(ProtoTokenType.STRING_LIT).value
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt == ProtoTokenType.PACKAGE:
                self._advance()
                result.package = self._expect_word().value
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt == ProtoTokenType.IMPORT:
                self._advance()
                # import [public|weak] "path";
                while self._peek().type == ProtoTokenType.IDENT:
                    self._advance()
                result.imports.append(self._expect(ProtoTokenType.STRING_LIT).value)
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt in (ProtoTokenType.OPTION, ProtoTokenType.RESERVED):
                self._skip_statement()
            elif tt in (ProtoTokenType.SERVICE, ProtoTokenType.EXTEND):
                self._skip_block()
            else:
                # Skip any unrecognised top-level token
                self._advance()

        return result

    # -- message parsing --

    def _parse_message(self) -> ProtoMessage:
        """Parse: MESSAGE IDENT LBRACE body RBRACE"""
        self._expect(ProtoTokenType.MESSAGE)
        name_tok = self._expect_word()
        self._expect(ProtoTokenType.LBRACE)
        msg = ProtoMessage(name=name_tok.value)
        self._parse_message_body(msg)
        self._expect(ProtoTokenType.RBRACE)
        return msg

    def _parse_message_body(self, msg: ProtoMessage) -> None:
        """Parse the contents between { and } of a message."""
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type

            if tt == ProtoTokenType.MESSAGE:
                msg.nested_messages.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                msg.nested_enums.append(self._parse_enum())
            elif tt == ProtoTokenType.ONEOF:
                msg.oneofs.append(self._parse_oneof(msg))
            elif tt == ProtoTokenType.OPTION:
                name, value = self._parse_option_statement()
                msg.options[name] = value
            elif tt == ProtoTokenType.MAP:
                msg.fields.append(self._parse_map_field())
            elif tt in _LABELS:
                label = _LABELS[self._advance().type]
                msg.fields.append(self._parse_field(label=label))
            elif tt == ProtoTokenType.IDENT:
                msg.fields.append(self._parse_field())
            elif tt in (ProtoTokenType.RESERVED, ProtoTokenType.EXTENSIONS):
                self._skip_statement()
            elif tt == ProtoTokenType.EXTEND:
                self._skip_block()
            else:
                self._advance()

    def _parse_field(self, *, label: Optional[str] = None) -> ProtoField:
        """Parse: IDENT(type) IDENT(name) EQUALS NUMBER [options] SEMICOLON"""
        type_tok = self._expect_word()
        name_tok = self._expect_word()
        self._expect(ProtoTokenType.EQUALS)
        num_tok = self._expect(ProtoTokenType.NUMBER)
        options = self._parse_field_options()
        self._expect(ProtoTokenType.SEMICOLON)

        return ProtoField(
            type_name=type_tok.value,
            field_name=name_tok.value,
            field_number=self._field_number(num_tok),
            label=label,
            options=options,
        )

    def _parse_map_field(self) -> ProtoField:
        """Parse: MAP LANGLE key COMMA value RANGLE IDENT EQUALS NUMBER [options] SEMICOLON"""
        self._expect(ProtoTokenType.MAP)
        self._expect(ProtoTokenType.LANGLE)
        key_tok = self._expect_word()
        self._expect(ProtoTokenType.COMMA)
        value_tok = self._expect_word()
        self._expect(ProtoTokenType.RANGLE)
        name_tok = self._expect_word()
        self._expect(ProtoTokenType.EQUALS)
        num_tok = self._expect(ProtoTokenType.NUMBER)
        options = self._parse_field_options()
        self._expect(ProtoTokenType.SEMICOLON)

        return ProtoField(
            type_name=value_tok.value,
            field_name=name_tok.value,
            field_number=self._field_number(num_tok),
            is_map=True,
            map_key_type=key_tok.value,
            options=options,
        )

    def _field_number(self, tok: ProtoToken) -> int:
        try:
            return _int_literal(tok.value)
        except ValueError:
            raise ProtoParseError(f"Invalid field number {tok.value!r}", tok) from None

    def _parse_oneof(self, msg: ProtoMessage) -> ProtoOneOf:
        """Parse: ONEOF IDENT LBRACE (field | option)* RBRACE

        Member fields are appended to ``msg.fields`` in declaration order.
        """
        self._expect(ProtoTokenType.ONEOF)
        oneof = ProtoOneOf(name=self._expect_word().value)
        self._expect(ProtoTokenType.LBRACE)
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt == ProtoTokenType.OPTION:
                self._skip_statement()
            elif tt in WORD_TOKENS:
                f = self._parse_field()
                f.oneof_name = oneof.name
                msg.fields.append(f)
                oneof.field_names.append(f.field_name)
            else:
                self._advance()
        self._expect(ProtoTokenType.RBRACE)
        return oneof

    def _parse_enum(self) -> ProtoEnum:
        """Parse: ENUM IDENT LBRACE (IDENT EQUALS NUMBER [options] SEMICOLON)* RBRACE"""
        self._expect(ProtoTokenType.ENUM)
        enum = ProtoEnum(name=self._expect_word().value)
        self._expect(ProtoTokenType.LBRACE)
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt in (ProtoTokenType.OPTION, ProtoTokenType.RESERVED):
                self._skip_statement()
            elif tt in WORD_TOKENS:
                name_tok = self._advance()
                self._expect(ProtoTokenType.EQUALS)
                self._expect(ProtoTokenType.NUMBER)
                self._parse_field_options()
                self._expect(ProtoTokenType.SEMICOLON)
                enum.values.append(name_tok.value)
            else:
                self._advance()
        self._expect(ProtoTokenType.RBRACE)
        return enum

    # -- options --

    def _parse_option_statement(self) -> Tuple[str, Any]:
        """Parse: OPTION name EQUALS value SEMICOLON"""
        self._expect(ProtoTokenType.OPTION)
        name, value = self._parse_option_assignment()
        self._expect(ProtoTokenType.SEMICOLON)
        return name, value

    def _parse_field_options(self) -> Dict[str, Any]:
        """Parse an optional ``[name = value, ...]`` list."""
        options: Dict[str, Any] = {}
        if self._peek().type != ProtoTokenType.LBRACKET:
            return options
        self._advance()
        while not self._at_end():
            name, value = self._parse_option_assignment()
            options[name] = value
            if self._peek().type == ProtoTokenType.COMMA:
                self._advance()
                continue
            break
        self._expect(ProtoTokenType.RBRACKET)
        return options

    def _parse_option_assignment(self) -> Tuple[str, Any]:
        """Parse ``name = value``; ``(ext.name)`` names are stored without parens."""
        if self._peek().type == ProtoTokenType.LPAREN:
            self._advance()
            name = self._expect_word().value.lstrip(".")
            self._expect(ProtoTokenType.RPAREN)
            # (ext).sub_field form
            if self._peek().type == ProtoTokenType.IDENT and self._peek().value.startswith("."):
                name += self._advance().value
        else:
            name = self._expect_word().value
        self._expect(ProtoTokenType.EQUALS)

        if self._peek().type == ProtoTokenType.LBRACE:
            # Aggregate (text format) values are not interpreted.
            self._skip_braces()
            return name, None
        tok = self._advance()
        if tok.type not in WORD_TOKENS and tok.type not in (
            ProtoTokenType.NUMBER,
            ProtoTokenType.STRING_LIT,
        ):
            raise ProtoParseError(f"Invalid value for option {name!r}: {tok.value!r}", tok)
        return name, _literal_value(tok)

    # -- skip helpers --

    def _skip_statement(self) -> None:
        """Skip tokens until (and including) the next semicolon."""
        while not self._at_end():
            tok = self._advance()
            if tok.type == ProtoTokenType.SEMICOLON:
                return

    def _skip_block(self) -> None:
        """Skip a keyword + IDENT + braced block (e.g. service, extend)."""
        self._advance()  # keyword
        # Skip until opening brace
        while not self._at_end() and self._peek().type != ProtoTokenType.LBRACE:
            self._advance()
        self._skip_braces()

    def _skip_braces(self) -> None:
        if self._at_end():
            return
        self._advance()  # consume LBRACE
        depth = 1
        while not self._at_end() and depth > 0:
            tok = self._advance()
            if tok.type == ProtoTokenType.LBRACE:
                depth += 1
            elif tok.type == ProtoTokenType.RBRACE:
                depth -= 1

    # -- token helpers --

    def _peek(self) -> ProtoToken:
        return self._tokens[self._pos]

    def _advance(self) -> ProtoToken:
        tok = self._tokens[self._pos]
        if tok.type != ProtoTokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, expected: ProtoTokenType) -> ProtoToken:
        tok = self._peek()
        if tok.type != expected:
            raise ProtoParseError(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _expect_word(self) -> ProtoToken:
        """Expect an identifier; keywords are valid names in most positions."""
        tok = self._peek()
        if tok.type not in WORD_TOKENS:
            raise ProtoParseError(
                f"Expected IDENT, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == ProtoTokenType.EOF
