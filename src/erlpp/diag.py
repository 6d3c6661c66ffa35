from dataclasses import dataclass

from erlpp.lexer import Position

PP_SYNTAX = "EPP-0101"
PP_STRUCTURE = "EPP-0102"
PP_UNBOUND_NAME = "EPP-0201"
PP_ARITY_MISMATCH = "EPP-0202"
PP_INCLUDE = "EPP-0301"
PP_INCLUDE_CYCLE = "EPP-0302"
PP_INVALID_INPUT = "EPP-0401"
PP_ERROR_DIRECTIVE = "EPP-0501"
PP_WARNING_DIRECTIVE = "EPP-0502"


@dataclass(frozen=True)
class Diagnostic:
    stage: str
    filename: str
    message: str
    line: int | None = None
    column: int | None = None
    code: str | None = None

    def __str__(self) -> str:
        if self.line is None or self.column is None:
            return f"{self.filename}: {self.stage}: {self.message}"
        return f"{self.filename}:{self.line}:{self.column}: {self.stage}: {self.message}"


class FrontendError(ValueError):
    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic


class PreprocessorError(ValueError):
    default_code = PP_SYNTAX

    def __init__(
        self,
        message: str,
        position: Position | None = None,
        *,
        filename: str | None = None,
        code: str | None = None,
    ) -> None:
        self.message = message
        self.position = position
        self.filename = filename
        self.code = code or self.default_code
        super().__init__(self._render())

    def _render(self) -> str:
        if self.position is None:
            return self.message
        if self.filename is None:
            return f"{self.message} at {self.position}"
        return f"{self.message} at {self.filename}:{self.position}"

    def with_filename(self, filename: str) -> "PreprocessorError":
        if self.filename is None:
            self.filename = filename
            self.args = (self._render(),)
        return self

    def to_diagnostic(self, filename: str) -> Diagnostic:
        line = self.position.line if self.position is not None else None
        column = self.position.column if self.position is not None else None
        return Diagnostic(
            "preprocess", self.filename or filename, self.message, line, column, self.code
        )


class PreprocessorSyntaxError(PreprocessorError):
    default_code = PP_SYNTAX


class StructuralError(PreprocessorError):
    default_code = PP_STRUCTURE


class ArityMismatchError(PreprocessorError):
    default_code = PP_ARITY_MISMATCH


class IncludeError(PreprocessorError):
    default_code = PP_INCLUDE


class IncludeCycleError(IncludeError):
    default_code = PP_INCLUDE_CYCLE


class InvalidInputError(PreprocessorError):
    default_code = PP_INVALID_INPUT


class UnboundNameError(InvalidInputError):
    default_code = PP_UNBOUND_NAME


class DirectiveError(PreprocessorError):
    default_code = PP_ERROR_DIRECTIVE
