from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from typing import ClassVar

from erlpp.diag import PreprocessorSyntaxError
from erlpp.lexer import Position, Token, TokenKind, strip_trivia
from erlpp.macros import MacroDefinition, MacroName
from erlpp.token_reader import TokenReader


@dataclass(frozen=True)
class Directive:
    keyword: ClassVar[str] = ""

    tokens: tuple[Token, ...]

    @property
    def start(self) -> Position:
        return self.tokens[0].start

    @property
    def end(self) -> Position:
        return self.tokens[-1].end

    def __str__(self) -> str:
        return "".join(token.text for token in self.tokens)


@dataclass(frozen=True)
class _PathDirective(Directive):
    path: Token

    @property
    def path_value(self) -> str:
        return str(self.path.value)


@dataclass(frozen=True)
class Include(_PathDirective):
    keyword: ClassVar[str] = "include"


@dataclass(frozen=True)
class IncludeLib(_PathDirective):
    keyword: ClassVar[str] = "include_lib"


@dataclass(frozen=True)
class Define(Directive):
    keyword: ClassVar[str] = "define"

    definition: MacroDefinition

    @property
    def name(self) -> MacroName:
        return self.definition.name


@dataclass(frozen=True)
class Undef(Directive):
    keyword: ClassVar[str] = "undef"

    name: MacroName


@dataclass(frozen=True)
class Ifdef(Directive):
    keyword: ClassVar[str] = "ifdef"

    name: MacroName


@dataclass(frozen=True)
class Ifndef(Directive):
    keyword: ClassVar[str] = "ifndef"

    name: MacroName


@dataclass(frozen=True)
class Else(Directive):
    keyword: ClassVar[str] = "else"


@dataclass(frozen=True)
class Endif(Directive):
    keyword: ClassVar[str] = "endif"


@dataclass(frozen=True)
class _MessageDirective(Directive):
    message_tokens: tuple[Token, ...]
    message_start: Position
    message_end: Position

    @property
    def message(self) -> str:
        significant = [token for token in self.message_tokens if not token.is_trivia]
        if len(significant) == 1 and significant[0].kind == TokenKind.STRING:
            return str(significant[0].value)
        return "".join(token.text for token in self.message_tokens).strip()


@dataclass(frozen=True)
class ErrorDirective(_MessageDirective):
    keyword: ClassVar[str] = "error"


@dataclass(frozen=True)
class WarningDirective(_MessageDirective):
    keyword: ClassVar[str] = "warning"


DIRECTIVE_TYPES: tuple[type[Directive], ...] = (
    Include,
    IncludeLib,
    Define,
    Undef,
    Ifdef,
    Ifndef,
    Else,
    Endif,
    ErrorDirective,
    WarningDirective,
)

_Builder = Callable[..., Directive]


def read_directive(reader: TokenReader) -> Directive | None:
    """Returns None, reader untouched, unless a directive keyword follows ``-``."""
    head = reader.peek_token()
    if head is None or not head.is_symbol("-"):
        return None
    reader.start_transaction()
    try:
        reader.read_token()
        keyword = reader.try_read_expected(TokenKind.ATOM)
        directive_type = _DIRECTIVES.get(str(keyword.value)) if keyword is not None else None
        if directive_type is None:
            reader.abort_transaction()
            return None
        build = _READERS[directive_type](reader, head)
    except PreprocessorSyntaxError:
        reader.abort_transaction()
        raise
    return build(tokens=tuple(reader.commit_transaction()))


def _read_include(reader: TokenReader, hyphen: Token) -> _Builder:
    reader.read_expected(TokenKind.SYMBOL, "(")
    path = reader.read_expected(TokenKind.STRING)
    reader.read_expected(TokenKind.SYMBOL, ")")
    reader.read_expected(TokenKind.SYMBOL, ".")
    return partial(Include, path=path)


def _read_include_lib(reader: TokenReader, hyphen: Token) -> _Builder:
    reader.read_expected(TokenKind.SYMBOL, "(")
    path = reader.read_expected(TokenKind.STRING)
    reader.read_expected(TokenKind.SYMBOL, ")")
    reader.read_expected(TokenKind.SYMBOL, ".")
    return partial(IncludeLib, path=path)


def _read_define(reader: TokenReader, hyphen: Token) -> _Builder:
    reader.read_expected(TokenKind.SYMBOL, "(")
    name = _read_macro_name(reader)
    parameters = None
    if reader.try_read_expected(TokenKind.SYMBOL, "(") is not None:
        parameters = _read_parameters(reader)
    reader.read_expected(TokenKind.SYMBOL, ",")
    body, _, dot = _read_until_close_dot(reader, "define", hyphen.start)
    definition = MacroDefinition(
        name,
        parameters,
        tuple(strip_trivia(body)),
        hyphen.start,
        dot.end,
    )
    return partial(Define, definition=definition)


def _read_named(directive_type: type[Directive]) -> Callable[[TokenReader, Token], _Builder]:
    def read(reader: TokenReader, hyphen: Token) -> _Builder:
        reader.read_expected(TokenKind.SYMBOL, "(")
        name = _read_macro_name(reader)
        reader.read_expected(TokenKind.SYMBOL, ")")
        reader.read_expected(TokenKind.SYMBOL, ".")
        return partial(directive_type, name=name)

    return read


def _read_bare(directive_type: type[Directive]) -> Callable[[TokenReader, Token], _Builder]:
    def read(reader: TokenReader, hyphen: Token) -> _Builder:
        reader.read_expected(TokenKind.SYMBOL, ".")
        return directive_type

    return read


def _read_message(
    directive_type: type[_MessageDirective],
) -> Callable[[TokenReader, Token], _Builder]:
    def read(reader: TokenReader, hyphen: Token) -> _Builder:
        open_paren = reader.read_expected(TokenKind.SYMBOL, "(")
        body, close_paren, _ = _read_until_close_dot(reader, directive_type.keyword, hyphen.start)
        return partial(
            directive_type,
            message_tokens=tuple(body),
            message_start=open_paren.end,
            message_end=close_paren.start,
        )

    return read


def _read_macro_name(reader: TokenReader) -> MacroName:
    token = reader.read_or_error()
    if token.kind not in {TokenKind.ATOM, TokenKind.VARIABLE}:
        raise PreprocessorSyntaxError(f"Invalid macro name: {token.text!r}", token.start)
    return MacroName.from_token(token)


def _read_parameters(reader: TokenReader) -> tuple[str, ...]:
    parameters: list[str] = []
    if reader.try_read_expected(TokenKind.SYMBOL, ")") is not None:
        return ()
    while True:
        variable = reader.read_expected(TokenKind.VARIABLE)
        if variable.text in parameters:
            raise PreprocessorSyntaxError(
                f"Duplicate macro parameter: {variable.text}", variable.start
            )
        parameters.append(variable.text)
        separator = reader.read_or_error()
        if separator.is_symbol(","):
            continue
        if separator.is_symbol(")"):
            return tuple(parameters)
        raise PreprocessorSyntaxError(
            f"Expected ',' or ')' in macro parameters, got {separator.text!r}",
            separator.start,
        )


def _read_until_close_dot(
    reader: TokenReader, keyword: str, start: Position
) -> tuple[list[Token], Token, Token]:
    # A ')' only ends the directive when the next significant token is '.'.
    body: list[Token] = []
    while True:
        token = reader.read_token()
        if token is None:
            raise PreprocessorSyntaxError(f"Unterminated -{keyword} directive", start)
        if token.is_symbol(")"):
            dot = reader.try_read_expected(TokenKind.SYMBOL, ".")
            if dot is not None:
                return body, token, dot
        body.append(token)


_READERS: dict[type[Directive], Callable[[TokenReader, Token], _Builder]] = {
    Include: _read_include,
    IncludeLib: _read_include_lib,
    Define: _read_define,
    Undef: _read_named(Undef),
    Ifdef: _read_named(Ifdef),
    Ifndef: _read_named(Ifndef),
    Else: _read_bare(Else),
    Endif: _read_bare(Endif),
    ErrorDirective: _read_message(ErrorDirective),
    WarningDirective: _read_message(WarningDirective),
}

_DIRECTIVES: dict[str, type[Directive]] = {
    directive_type.keyword: directive_type for directive_type in DIRECTIVE_TYPES
}
