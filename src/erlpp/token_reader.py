from collections.abc import Iterable

from erlpp.diag import PreprocessorSyntaxError
from erlpp.lexer import Position, Token, TokenKind


class TokenReader:
    def __init__(self, tokens: Iterable[Token]) -> None:
        self._tokens: list[Token] = []
        self._eof_position = Position()
        for token in tokens:
            if token.kind == TokenKind.EOF:
                self._eof_position = token.start
                break
            self._tokens.append(token)
            self._eof_position = token.end
        self._index = 0
        self._checkpoints: list[int] = []

    @property
    def index(self) -> int:
        return self._index

    @property
    def position(self) -> Position:
        if self._index < len(self._tokens):
            return self._tokens[self._index].start
        return self._eof_position

    @property
    def in_transaction(self) -> bool:
        return bool(self._checkpoints)

    def at_end(self) -> bool:
        return self._index >= len(self._tokens)

    def start_transaction(self) -> None:
        self._checkpoints.append(self._index)

    def commit_transaction(self) -> list[Token]:
        start = self._checkpoints.pop()
        return self._tokens[start : self._index]

    def abort_transaction(self) -> None:
        self._index = self._checkpoints.pop()

    def peek_token(self) -> Token | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def read_token(self) -> Token | None:
        token = self.peek_token()
        if token is not None:
            self._index += 1
        return token

    def read_token_or_error(self) -> Token:
        token = self.read_token()
        if token is None:
            raise PreprocessorSyntaxError("Unexpected end of input", self.position)
        return token

    def unread_token(self, token: Token) -> None:
        if self._index > 0 and self._tokens[self._index - 1] is token:
            self._index -= 1
        else:
            self._tokens.insert(self._index, token)

    def insert_tokens(self, tokens: list[Token]) -> None:
        if self._checkpoints:
            raise RuntimeError("Cannot insert tokens inside a transaction")
        self._tokens[self._index : self._index] = tokens

    def skip_whitespace_or_comment(self) -> list[Token]:
        skipped: list[Token] = []
        while self._index < len(self._tokens) and self._tokens[self._index].is_trivia:
            skipped.append(self._tokens[self._index])
            self._index += 1
        return skipped

    def read(self) -> Token | None:
        self.skip_whitespace_or_comment()
        return self.read_token()

    def read_or_error(self) -> Token:
        self.skip_whitespace_or_comment()
        return self.read_token_or_error()

    def read_expected(self, kind: TokenKind, text: str | None = None) -> Token:
        self.skip_whitespace_or_comment()
        token = self.read_token()
        if token is None:
            raise PreprocessorSyntaxError(
                f"Expected {_describe(kind, text)}, got end of input", self.position
            )
        if not _matches(token, kind, text):
            raise PreprocessorSyntaxError(
                f"Expected {_describe(kind, text)}, got {token.text!r}", token.start
            )
        return token

    def try_read_expected(self, kind: TokenKind, text: str | None = None) -> Token | None:
        saved = self._index
        self.skip_whitespace_or_comment()
        token = self.read_token()
        if token is not None and _matches(token, kind, text):
            return token
        self._index = saved
        return None


def _matches(token: Token, kind: TokenKind, text: str | None) -> bool:
    if token.kind != kind:
        return False
    if text is None:
        return True
    if kind == TokenKind.ATOM:
        return token.value == text
    return token.text == text


def _describe(kind: TokenKind, text: str | None) -> str:
    if text is None:
        return kind.name.lower()
    return f"{text!r}"
