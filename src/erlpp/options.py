from dataclasses import dataclass
from typing import Literal

DiagFormat = Literal["human", "json"]

DEFAULT_MAX_INCLUDE_DEPTH = 64


@dataclass(frozen=True)
class PreprocessOptions:
    include_dirs: tuple[str, ...] = ()
    code_paths: tuple[str, ...] = ()
    defines: tuple[str, ...] = ()
    undefs: tuple[str, ...] = ()
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    warn_as_error: bool = False
    diag_format: DiagFormat = "human"

    def __post_init__(self) -> None:
        if self.diag_format not in {"human", "json"}:
            raise ValueError(f"Unsupported diagnostic format: {self.diag_format}")
        if self.max_include_depth <= 0:
            raise ValueError(f"Invalid include depth limit: {self.max_include_depth}")


def normalize_options(options: PreprocessOptions | None) -> PreprocessOptions:
    return PreprocessOptions() if options is None else options
