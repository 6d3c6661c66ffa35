import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from erlpp.conditionals import ConditionalStack
from erlpp.diag import (
    PP_WARNING_DIRECTIVE,
    Diagnostic,
    DirectiveError,
    IncludeCycleError,
    IncludeError,
    InvalidInputError,
    PreprocessorError,
    PreprocessorSyntaxError,
    StructuralError,
)
from erlpp.directives import (
    Define,
    Directive,
    Else,
    Endif,
    ErrorDirective,
    Ifdef,
    Ifndef,
    Include,
    IncludeLib,
    Undef,
    WarningDirective,
    read_directive,
)
from erlpp.includes import resolve_include, resolve_include_lib
from erlpp.lexer import LexerError, Token, TokenKind, lex, strip_trivia
from erlpp.macros import MacroDefinition, MacroName, MacroTable, expand
from erlpp.options import PreprocessOptions, normalize_options
from erlpp.token_reader import TokenReader

logger = logging.getLogger(__name__)

_NAME_KINDS = frozenset({TokenKind.ATOM, TokenKind.VARIABLE})
_BRACKETS = {"(": ")", "[": "]", "{": "}", "<<": ">>"}
_BLOCK_KEYWORDS = frozenset({"begin", "case", "if", "receive", "try", "maybe"})


@dataclass
class _HiddenMacros:
    names: frozenset[MacroName]
    end: int


@dataclass
class _SourceFile:
    filename: str
    reader: TokenReader
    base_dir: Path | None
    conditional_depth: int = 0
    expansions: list[_HiddenMacros] = field(default_factory=list)

    @property
    def key(self) -> str:
        if self.base_dir is None:
            return self.filename
        return str(Path(self.filename).resolve())

    def hidden_names(self, index: int) -> frozenset[MacroName]:
        names: frozenset[MacroName] = frozenset()
        for hidden in self.expansions:
            if hidden.end > index:
                names |= hidden.names
        return names

    def push_expansion(self, names: frozenset[MacroName], tokens: list[Token]) -> None:
        index = self.reader.index
        self.expansions = [hidden for hidden in self.expansions if hidden.end > index]
        for hidden in self.expansions:
            hidden.end += len(tokens)
        self.reader.insert_tokens(tokens)
        self.expansions.append(_HiddenMacros(names, index + len(tokens)))


class Preprocessor:
    def __init__(
        self,
        tokens: Iterable[Token],
        *,
        filename: str = "<input>",
        options: PreprocessOptions | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._options = normalize_options(options)
        self._environ = environ
        self.macros = MacroTable()
        self.conditionals = ConditionalStack()
        self.directives: list[Directive] = []
        self.warnings: list[Diagnostic] = []
        self.include_trace: list[str] = []
        self._files = [_SourceFile(filename, TokenReader(tokens), _source_dir(filename))]
        self._can_directive_start = True
        self._done = False
        for define in self._options.defines:
            self.macros.define(_parse_option_define(define))
        for name in self._options.undefs:
            self.macros.undef(_parse_option_name(name))

    @classmethod
    def from_source(cls, source: str, **kwargs) -> "Preprocessor":
        return cls(lex(source), **kwargs)

    @property
    def filename(self) -> str:
        return self._files[-1].filename

    def __iter__(self) -> "Preprocessor":
        return self

    def __next__(self) -> Token:
        if self._done:
            raise StopIteration
        try:
            token = self._next_token()
        except PreprocessorError as error:
            self._done = True
            raise error.with_filename(self.filename)
        if token is None:
            self._done = True
            raise StopIteration
        return token

    def _next_token(self) -> Token | None:
        while True:
            source = self._files[-1]
            reader = source.reader
            token = reader.peek_token()
            if token is None:
                if not self._finish_file():
                    return None
                continue
            if token.is_trivia:
                reader.read_token()
                if self.conditionals.active:
                    return token
                continue
            hidden = source.hidden_names(reader.index)
            if self._can_directive_start and not hidden:
                directive = read_directive(reader)
                if directive is not None:
                    self._apply(directive)
                    continue
            reader.read_token()
            self._can_directive_start = token.is_symbol(".")
            if not self.conditionals.active:
                continue
            if self._try_expand(token, hidden):
                continue
            return token

    def _finish_file(self) -> bool:
        source = self._files[-1]
        self.conditionals.check_closed(source.conditional_depth)
        if len(self._files) == 1:
            return False
        logger.debug("Finished %s", source.filename)
        self._files.pop()
        self._can_directive_start = True
        return True

    def _apply(self, directive: Directive) -> None:
        self.directives.append(directive)
        if isinstance(directive, Ifdef):
            self.conditionals.push_ifdef(directive.name in self.macros, directive.start)
            return
        if isinstance(directive, Ifndef):
            self.conditionals.push_ifndef(directive.name in self.macros, directive.start)
            return
        if isinstance(directive, (Else, Endif)):
            if self.conditionals.depth <= self._files[-1].conditional_depth:
                raise StructuralError(
                    f"Unexpected -{directive.keyword} without -ifdef or -ifndef in this file",
                    directive.start,
                )
            if isinstance(directive, Else):
                self.conditionals.flip_else(directive.start)
            else:
                self.conditionals.pop_endif(directive.start)
            return
        if not self.conditionals.active:
            logger.debug("Skipping -%s in inactive branch", directive.keyword)
            return
        if isinstance(directive, Define):
            self.macros.define(directive.definition)
        elif isinstance(directive, Undef):
            self.macros.undef(directive.name)
        elif isinstance(directive, (Include, IncludeLib)):
            self._include(directive)
        elif isinstance(directive, ErrorDirective):
            raise DirectiveError(directive.message, directive.start)
        elif isinstance(directive, WarningDirective):
            self._warn(directive)

    def _warn(self, directive: WarningDirective) -> None:
        diagnostic = Diagnostic(
            "preprocess",
            self.filename,
            directive.message,
            directive.start.line,
            directive.start.column,
            PP_WARNING_DIRECTIVE,
        )
        self.warnings.append(diagnostic)
        logger.warning("%s", diagnostic)
        if self._options.warn_as_error:
            raise DirectiveError(directive.message, directive.start, code=PP_WARNING_DIRECTIVE)

    def _include(self, directive: Include | IncludeLib) -> None:
        source = self._files[-1]
        if len(self._files) > self._options.max_include_depth:
            raise IncludeError(
                f"Include depth limit of {self._options.max_include_depth} exceeded",
                directive.start,
            )
        if isinstance(directive, IncludeLib):
            path, text = resolve_include_lib(
                directive.path_value,
                self._options.code_paths,
                base_dir=source.base_dir,
                include_dirs=self._options.include_dirs,
                environ=self._environ,
                position=directive.start,
            )
        else:
            path, text = resolve_include(
                directive.path_value,
                base_dir=source.base_dir,
                include_dirs=self._options.include_dirs,
                environ=self._environ,
                position=directive.start,
            )
        resolved = path.resolve()
        if any(str(resolved) == included.key for included in self._files):
            raise IncludeCycleError(f"Circular include of {path}", directive.start)
        self.include_trace.append(
            f"{source.filename}:{directive.start.line}: "
            f"-{directive.keyword}({directive.path.text}) -> {path}"
        )
        logger.debug("Including %s", path)
        try:
            tokens = lex(text)
        except LexerError as error:
            raise InvalidInputError(
                f"Unable to tokenize {path}: {error}", directive.start
            ) from error
        self._files.append(
            _SourceFile(
                str(path),
                TokenReader(tokens),
                resolved.parent,
                self.conditionals.depth,
            )
        )
        self._can_directive_start = True

    def _try_expand(self, token: Token, hidden: frozenset[MacroName]) -> bool:
        if token.kind in _NAME_KINDS:
            return self._expand(token, hidden)
        if not token.is_symbol("?"):
            return False
        reader = self._files[-1].reader
        name_token = reader.peek_token()
        if name_token is None or name_token.kind not in _NAME_KINDS:
            return False
        hidden = self._files[-1].hidden_names(reader.index)
        reader.read_token()
        if self._expand(name_token, hidden):
            return True
        reader.unread_token(name_token)
        return False

    def _expand(self, name_token: Token, hidden: frozenset[MacroName]) -> bool:
        source = self._files[-1]
        reader = source.reader
        name = MacroName.from_token(name_token)
        definition = self.macros.get(name)
        if definition is None or name in hidden:
            return False
        arguments: list[list[Token]] = []
        if definition.parameters is not None:
            if reader.try_read_expected(TokenKind.SYMBOL, "(") is None:
                return False
            arguments = _read_arguments(reader, name_token)
        expansion = expand(definition, arguments, position=name_token.start)
        logger.debug("Expanding %s at %s", definition.signature, name_token.start)
        source.push_expansion(hidden | {name}, expansion)
        return True


def _read_arguments(reader: TokenReader, name_token: Token) -> list[list[Token]]:
    arguments: list[list[Token]] = []
    current: list[Token] = []
    closers = [")"]
    while True:
        token = reader.read_token()
        if token is None:
            raise PreprocessorSyntaxError(
                f"Unterminated invocation of macro {name_token.text}", name_token.start
            )
        if _closes(token, closers[-1]):
            closers.pop()
            if not closers:
                if arguments or strip_trivia(current):
                    arguments.append(strip_trivia(current))
                return arguments
        elif len(closers) == 1 and token.is_symbol(","):
            arguments.append(strip_trivia(current))
            current = []
            continue
        elif token.kind == TokenKind.SYMBOL and token.text in _BRACKETS:
            closers.append(_BRACKETS[token.text])
        elif token.kind == TokenKind.ATOM and token.text in _BLOCK_KEYWORDS:
            closers.append("end")
        elif token.kind == TokenKind.ATOM and token.text == "fun" and _next_is_paren(reader):
            closers.append("end")
        current.append(token)


def _closes(token: Token, closer: str) -> bool:
    if closer == "end":
        return token.kind == TokenKind.ATOM and token.text == "end"
    return token.is_symbol(closer)


def _next_is_paren(reader: TokenReader) -> bool:
    reader.start_transaction()
    token = reader.read()
    reader.abort_transaction()
    return token is not None and token.is_symbol("(")


def _parse_option_name(text: str) -> MacroName:
    try:
        tokens = [token for token in lex(text) if token.kind != TokenKind.EOF]
    except LexerError as error:
        raise InvalidInputError(f"Invalid macro name: {text}") from error
    if len(tokens) != 1 or tokens[0].kind not in _NAME_KINDS:
        raise InvalidInputError(f"Invalid macro name: {text}")
    return MacroName.from_token(tokens[0])


def _parse_option_define(define: str) -> MacroDefinition:
    name_text, has_value, value = define.partition("=")
    name = _parse_option_name(name_text)
    try:
        replacement = lex(value if has_value else "true")
    except LexerError as error:
        raise InvalidInputError(f"Invalid macro definition: {define}") from error
    body = [token for token in replacement if token.kind != TokenKind.EOF]
    return MacroDefinition(name, None, tuple(strip_trivia(body)))


def _source_dir(filename: str) -> Path | None:
    if filename in {"<input>", "<stdin>"}:
        return None
    return Path(filename).resolve().parent
