from dataclasses import dataclass, field
from typing import Literal

from erlpp.diag import StructuralError
from erlpp.lexer import Position

FrameKind = Literal["ifdef", "ifndef"]


@dataclass
class ConditionalFrame:
    kind: FrameKind
    taken: bool
    parent_active: bool = True
    saw_else: bool = False
    position: Position = field(default_factory=Position)

    @property
    def active(self) -> bool:
        return self.parent_active and self.taken != self.saw_else


class ConditionalStack:
    def __init__(self) -> None:
        self._frames: list[ConditionalFrame] = []

    @property
    def active(self) -> bool:
        return not self._frames or self._frames[-1].active

    @property
    def depth(self) -> int:
        return len(self._frames)

    def __bool__(self) -> bool:
        return bool(self._frames)

    def innermost(self) -> ConditionalFrame | None:
        return self._frames[-1] if self._frames else None

    def push_ifdef(self, defined: bool, position: Position = Position()) -> ConditionalFrame:
        return self._push("ifdef", defined, position)

    def push_ifndef(self, defined: bool, position: Position = Position()) -> ConditionalFrame:
        return self._push("ifndef", not defined, position)

    def flip_else(self, position: Position = Position()) -> ConditionalFrame:
        if not self._frames:
            raise StructuralError("Unexpected -else without -ifdef or -ifndef", position)
        frame = self._frames[-1]
        if frame.saw_else:
            raise StructuralError("Duplicate -else", position)
        frame.saw_else = True
        return frame

    def pop_endif(self, position: Position = Position()) -> ConditionalFrame:
        if not self._frames:
            raise StructuralError("Unexpected -endif without -ifdef or -ifndef", position)
        return self._frames.pop()

    def check_closed(self, depth: int = 0, position: Position | None = None) -> None:
        """Fail if frames opened above ``depth`` are still open."""
        if len(self._frames) > depth:
            frame = self._frames[-1]
            raise StructuralError(
                f"Unterminated -{frame.kind}",
                frame.position if position is None else position,
            )

    def _push(self, kind: FrameKind, taken: bool, position: Position) -> ConditionalFrame:
        frame = ConditionalFrame(kind, taken, self.active, position=position)
        self._frames.append(frame)
        return frame
