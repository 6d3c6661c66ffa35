import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from erlpp.diag import ArityMismatchError, InvalidInputError, UnboundNameError
from erlpp.lexer import Position, Token, TokenKind, make_string_token

logger = logging.getLogger(__name__)

STRINGIFY = "??"


@dataclass(frozen=True)
class MacroName:
    text: str
    is_variable: bool = field(default=False, compare=False)

    @classmethod
    def from_token(cls, token: Token) -> "MacroName":
        if token.kind == TokenKind.ATOM:
            return cls(str(token.value))
        if token.kind == TokenKind.VARIABLE:
            return cls(token.text, is_variable=True)
        raise InvalidInputError(f"Invalid macro name: {token.text!r}", token.start)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class MacroDefinition:
    name: MacroName
    parameters: tuple[str, ...] | None
    replacement: tuple[Token, ...]
    start: Position = Position()
    end: Position = Position()

    @property
    def span(self) -> tuple[Position, Position]:
        return self.start, self.end

    @property
    def signature(self) -> str:
        if self.parameters is None:
            return self.name.text
        return f"{self.name.text}({','.join(self.parameters)})"

    @property
    def body_text(self) -> str:
        return "".join(token.text for token in self.replacement)


class MacroTable:
    def __init__(self) -> None:
        self._macros: dict[MacroName, MacroDefinition] = {}

    def define(self, definition: MacroDefinition) -> MacroDefinition | None:
        previous = self._macros.get(definition.name)
        self._macros[definition.name] = definition
        logger.debug("Defining %s", definition.signature)
        return previous

    def undef(self, name: MacroName) -> bool:
        logger.debug("Undefining %s", name)
        return self._macros.pop(name, None) is not None

    def get(self, name: MacroName) -> MacroDefinition | None:
        return self._macros.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._macros

    def __len__(self) -> int:
        return len(self._macros)

    def __iter__(self) -> Iterator[MacroName]:
        return iter(self._macros)

    def definitions(self) -> list[MacroDefinition]:
        return [self._macros[name] for name in sorted(self._macros, key=lambda n: n.text)]

    def dump(self) -> list[str]:
        return [
            f"{definition.signature}={definition.body_text.strip()}"
            for definition in self.definitions()
        ]


def expand(
    definition: MacroDefinition,
    arguments: Sequence[Sequence[Token]] = (),
    *,
    position: Position | None = None,
) -> list[Token]:
    if definition.parameters is None:
        if arguments:
            raise ArityMismatchError(
                f"Macro {definition.name} takes no arguments, got {len(arguments)}", position
            )
        return list(definition.replacement)
    if len(arguments) != len(definition.parameters):
        raise ArityMismatchError(
            f"Macro {definition.name} expects {len(definition.parameters)} "
            f"argument(s), got {len(arguments)}",
            position,
        )
    bindings = {name: list(arg) for name, arg in zip(definition.parameters, arguments)}

    tokens: list[Token] = []
    template = definition.replacement
    index = 0
    while index < len(template):
        token = template[index]
        index += 1
        if token.kind == TokenKind.VARIABLE and token.text in bindings:
            tokens.extend(bindings[token.text])
            continue
        if token.is_symbol(STRINGIFY):
            while index < len(template) and template[index].is_trivia:
                index += 1
            if index >= len(template):
                raise InvalidInputError(
                    f"'??' in macro {definition.name} is not followed by a parameter",
                    token.start,
                )
            target = template[index]
            index += 1
            if target.text not in bindings:
                raise UnboundNameError(
                    f"'??{target.text}' does not name a parameter of macro {definition.name}",
                    target.start,
                )
            tokens.append(_stringify(bindings[target.text], token.start))
            continue
        tokens.append(token)
    return tokens


def _stringify(argument: list[Token], fallback: Position) -> Token:
    text = "".join(token.text for token in argument)
    start = argument[0].start if argument else fallback
    return make_string_token(text, start)
