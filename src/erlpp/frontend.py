import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from erlpp.diag import Diagnostic, FrontendError, PreprocessorError
from erlpp.directives import Directive
from erlpp.lexer import LexerError, Token, lex
from erlpp.options import PreprocessOptions
from erlpp.preprocessor import Preprocessor


def _trim_location_suffix(message: str, line: int, column: int) -> str:
    return message.removesuffix(f" at {line}:{column}")


@dataclass(frozen=True)
class PreprocessResult:
    filename: str
    source: str
    tokens: list[Token]
    directives: list[Directive]
    warnings: list[Diagnostic]
    macro_table: list[str]
    include_trace: list[str]

    @property
    def text(self) -> str:
        return render_tokens(self.tokens)


def read_source(path: str, *, stdin: TextIO | None = None) -> tuple[str, str]:
    if path == "-":
        stream = sys.stdin if stdin is None else stdin
        return "<stdin>", stream.read()
    resolved = Path(path)
    return str(resolved), resolved.read_text(encoding="utf-8")


def preprocess_source(
    source: str,
    *,
    filename: str = "<input>",
    options: PreprocessOptions | None = None,
    environ: Mapping[str, str] | None = None,
) -> PreprocessResult:
    try:
        tokens = lex(source)
    except LexerError as error:
        message = _trim_location_suffix(str(error), error.line, error.column)
        diagnostic = Diagnostic("lex", filename, message, error.line, error.column)
        raise FrontendError(diagnostic) from error
    try:
        preprocessor = Preprocessor(tokens, filename=filename, options=options, environ=environ)
        output = list(preprocessor)
    except PreprocessorError as error:
        raise FrontendError(error.to_diagnostic(filename)) from error
    return PreprocessResult(
        filename,
        source,
        output,
        preprocessor.directives,
        preprocessor.warnings,
        preprocessor.macros.dump(),
        preprocessor.include_trace,
    )


def preprocess_path(
    path: str | Path,
    *,
    options: PreprocessOptions | None = None,
    environ: Mapping[str, str] | None = None,
) -> PreprocessResult:
    filename, source = read_source(str(path))
    return preprocess_source(source, filename=filename, options=options, environ=environ)


def render_tokens(tokens: list[Token]) -> str:
    return "".join(token.text for token in tokens)


def format_token(token: Token) -> str:
    if not token.text:
        return f"{token.start}\t{token.kind.name}"
    return f"{token.start}\t{token.kind.name}\t{token.text!r}"


def format_tokens(tokens: list[Token], *, include_trivia: bool = False) -> list[str]:
    return [format_token(token) for token in tokens if include_trivia or not token.is_trivia]


def format_directive(directive: Directive) -> str:
    return f"{directive.start}\t{directive.keyword}\t{directive}"
