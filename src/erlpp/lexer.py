from dataclasses import dataclass
from enum import Enum, auto
from typing import NoReturn, cast

SYMBOLS: tuple[str, ...] = (
    "=:=",
    "=/=",
    "...",
    "<<",
    ">>",
    "<-",
    "<=",
    "->",
    "=>",
    ":=",
    "::",
    "..",
    "||",
    "++",
    "--",
    "==",
    "/=",
    "=<",
    ">=",
    "??",
    "?=",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ";",
    ":",
    ".",
    "#",
    "|",
    "!",
    "?",
    "+",
    "-",
    "*",
    "/",
    "=",
    "<",
    ">",
)

SYMBOLS_SORTED: tuple[str, ...] = cast(
    tuple[str, ...], tuple(sorted(SYMBOLS, key=len, reverse=True))
)

SIMPLE_ESCAPES = {
    "b": "\b",
    "d": "\x7f",
    "e": "\x1b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "s": " ",
    "t": "\t",
    "v": "\v",
}

WHITESPACE = " \t\r\n\f\v"


class TokenKind(Enum):
    ATOM = auto()
    VARIABLE = auto()
    SYMBOL = auto()
    STRING = auto()
    INTEGER = auto()
    FLOAT = auto()
    CHAR = auto()
    COMMENT = auto()
    WHITESPACE = auto()
    EOF = auto()


TRIVIA_KINDS = frozenset({TokenKind.WHITESPACE, TokenKind.COMMENT})


@dataclass(frozen=True, order=True)
class Position:
    line: int = 1
    column: int = 1
    offset: int = 0

    def advance(self, text: str) -> "Position":
        line = self.line
        column = self.column
        for ch in text:
            if ch == "\n":
                line += 1
                column = 1
            else:
                column += 1
        return Position(line, column, self.offset + len(text))

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    start: Position
    end: Position

    @property
    def is_trivia(self) -> bool:
        return self.kind in TRIVIA_KINDS

    @property
    def value(self) -> str | int | float:
        if self.kind == TokenKind.ATOM:
            if self.text.startswith("'"):
                return _unescape(self.text[1:-1])
            return self.text
        if self.kind == TokenKind.STRING:
            return _unescape(self.text[1:-1])
        if self.kind == TokenKind.CHAR:
            return _unescape(self.text[1:])
        if self.kind == TokenKind.INTEGER:
            return _integer_value(self.text)
        if self.kind == TokenKind.FLOAT:
            return float(self.text.replace("_", ""))
        return self.text

    def is_symbol(self, text: str) -> bool:
        return self.kind == TokenKind.SYMBOL and self.text == text


class LexerError(ValueError):
    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(f"{message} at {line}:{column}")
        self.line = line
        self.column = column


def lex(source: str) -> list[Token]:
    return Lexer(source).tokenize()


def quote_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def make_string_token(value: str, start: Position) -> Token:
    text = quote_string(value)
    return Token(TokenKind.STRING, text, start, start.advance(text))


class Lexer:
    def __init__(self, source: str) -> None:
        self._source = source
        self._length = len(source)
        self._index = 0
        self._line = 1
        self._column = 1

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            start = self._position()
            if self._eof():
                tokens.append(Token(TokenKind.EOF, "", start, start))
                return tokens
            kind = self._read_token()
            if self._index == start.offset:
                self._error("Unexpected character")
            text = self._source[start.offset : self._index]
            tokens.append(Token(kind, text, start, self._position()))

    def _read_token(self) -> TokenKind:
        ch = self._peek()
        if ch in WHITESPACE:
            while not self._eof() and self._peek() in WHITESPACE:
                self._advance()
            return TokenKind.WHITESPACE
        if ch == "%":
            while not self._eof() and self._peek() != "\n":
                self._advance()
            return TokenKind.COMMENT
        if ch == '"':
            self._read_quoted('"', "Unterminated string")
            return TokenKind.STRING
        if ch == "'":
            self._read_quoted("'", "Unterminated quoted atom")
            return TokenKind.ATOM
        if ch == "$":
            self._read_char()
            return TokenKind.CHAR
        if _is_decimal_digit(ch):
            return self._read_number()
        if ch.isalpha() and ch.islower():
            self._read_name()
            return TokenKind.ATOM
        if ch == "_" or ch.isalpha():
            self._read_name()
            return TokenKind.VARIABLE
        self._read_symbol()
        return TokenKind.SYMBOL

    def _position(self) -> Position:
        return Position(self._line, self._column, self._index)

    def _peek(self, offset: int = 0) -> str:
        index = self._index + offset
        if index >= self._length:
            return ""
        return self._source[index]

    def _advance(self) -> str:
        if self._index >= self._length:
            return ""
        ch = self._source[self._index]
        self._index += 1
        if ch == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return ch

    def _eof(self) -> bool:
        return self._index >= self._length

    def _read_name(self) -> None:
        while not self._eof() and _is_name_char(self._peek()):
            self._advance()

    def _read_quoted(self, quote: str, message: str) -> None:
        start = self._position()
        self._advance()
        while not self._eof():
            ch = self._advance()
            if ch == quote:
                return
            if ch == "\\":
                if self._eof():
                    break
                self._advance()
        self._error(message, line=start.line, column=start.column)

    def _read_char(self) -> None:
        start = self._position()
        self._advance()
        if self._eof():
            self._error("Unterminated character literal", line=start.line, column=start.column)
        if self._advance() != "\\":
            return
        ch = self._advance()
        if ch == "":
            self._error("Unterminated character literal", line=start.line, column=start.column)
        if ch == "^":
            self._advance()
        elif ch == "x":
            if self._peek() == "{":
                while not self._eof() and self._advance() != "}":
                    pass
            else:
                for _ in range(2):
                    if _is_hex_digit(self._peek()):
                        self._advance()
        elif _is_octal_digit(ch):
            for _ in range(2):
                if _is_octal_digit(self._peek()):
                    self._advance()

    def _read_number(self) -> TokenKind:
        self._read_digits(_is_decimal_digit)
        if self._peek() == "#" and _is_base_digit(self._peek(1)):
            self._advance()
            self._read_digits(_is_base_digit)
            return TokenKind.INTEGER
        if self._peek() == "." and _is_decimal_digit(self._peek(1)):
            self._advance()
            self._read_digits(_is_decimal_digit)
            if self._peek() in {"e", "E"}:
                sign = 1 if self._peek(1) in {"+", "-"} else 0
                if _is_decimal_digit(self._peek(1 + sign)):
                    self._advance()
                    if sign:
                        self._advance()
                    self._read_digits(_is_decimal_digit)
            return TokenKind.FLOAT
        return TokenKind.INTEGER

    def _read_digits(self, predicate) -> None:
        while not self._eof():
            ch = self._peek()
            if predicate(ch) or (ch == "_" and predicate(self._peek(1))):
                self._advance()
                continue
            break

    def _read_symbol(self) -> None:
        for symbol in SYMBOLS_SORTED:
            if self._source.startswith(symbol, self._index):
                self._index += len(symbol)
                self._column += len(symbol)
                return
        self._error("Unexpected character")

    def _error(
        self, message: str, *, line: int | None = None, column: int | None = None
    ) -> NoReturn:
        raise LexerError(message, line or self._line, column or self._column)


def _unescape(text: str) -> str:
    out: list[str] = []
    index = 0
    length = len(text)
    while index < length:
        ch = text[index]
        index += 1
        if ch != "\\" or index >= length:
            out.append(ch)
            continue
        ch = text[index]
        index += 1
        if ch in SIMPLE_ESCAPES:
            out.append(SIMPLE_ESCAPES[ch])
        elif ch == "^" and index < length:
            out.append(chr(ord(text[index]) % 32))
            index += 1
        elif ch == "x" and index < length and text[index] == "{" and "}" in text[index:]:
            close = text.find("}", index)
            out.append(chr(int(text[index + 1 : close], 16)))
            index = close + 1
        elif ch == "x":
            digits = ""
            while index < length and len(digits) < 2 and _is_hex_digit(text[index]):
                digits += text[index]
                index += 1
            out.append(chr(int(digits, 16)) if digits else "x")
        elif _is_octal_digit(ch):
            digits = ch
            while index < length and len(digits) < 3 and _is_octal_digit(text[index]):
                digits += text[index]
                index += 1
            out.append(chr(int(digits, 8)))
        else:
            out.append(ch)
    return "".join(out)


def _integer_value(text: str) -> int:
    digits = text.replace("_", "")
    if "#" in digits:
        base, _, number = digits.partition("#")
        return int(number, int(base))
    return int(digits)


def _is_name_char(ch: str) -> bool:
    return ch == "_" or ch == "@" or ch.isalnum()


def _is_decimal_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_base_digit(ch: str) -> bool:
    return ch.isalnum() and ch.isascii()


def _is_hex_digit(ch: str) -> bool:
    return _is_decimal_digit(ch) or ("a" <= ch <= "f") or ("A" <= ch <= "F")


def _is_octal_digit(ch: str) -> bool:
    return "0" <= ch <= "7"


def strip_trivia(tokens: list[Token]) -> list[Token]:
    start = 0
    end = len(tokens)
    while start < end and tokens[start].is_trivia:
        start += 1
    while end > start and tokens[end - 1].is_trivia:
        end -= 1
    return tokens[start:end]
