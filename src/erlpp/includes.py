import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path, PurePath

from erlpp.diag import IncludeError, InvalidInputError
from erlpp.lexer import Position

logger = logging.getLogger(__name__)


def substitute_path_variables(
    path: str,
    environ: Mapping[str, str] | None = None,
    position: Position | None = None,
) -> Path:
    """Replace a leading ``$VAR`` path component with its environment value."""
    if not path:
        raise InvalidInputError("Empty include path", position)
    env = os.environ if environ is None else environ
    parts = PurePath(path).parts
    head = parts[0]
    if head.startswith("$") and len(head) > 1:
        name = head[1:]
        if name not in env:
            raise IncludeError(f"Undefined path variable: ${name}", position)
        return Path(env[name], *parts[1:])
    return Path(path)


def read_file(path: Path, position: Position | None = None) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as error:
        raise IncludeError(f"Unable to read include: {path}: {error}", position) from error


def search_include(
    path: Path,
    *,
    base_dir: Path | None = None,
    include_dirs: Sequence[str] = (),
) -> Path:
    if path.is_absolute():
        return path
    search_roots: list[Path] = []
    if base_dir is not None:
        search_roots.append(base_dir)
    search_roots.extend(Path(root) for root in include_dirs)
    for root in search_roots:
        candidate = root / path
        logger.debug("Searching %s", candidate)
        if candidate.is_file():
            return candidate
    return path


def find_application_dir(app_name: str, code_paths: Sequence[str]) -> Path | None:
    pattern = f"{app_name}-*"
    for root in code_paths:
        matches = sorted(path for path in Path(root).glob(pattern) if path.is_dir())
        if matches:
            logger.debug("Application %s found at %s", app_name, matches[0])
            return matches[0]
    return None


def resolve_include(
    path_literal: str,
    *,
    base_dir: Path | None = None,
    include_dirs: Sequence[str] = (),
    environ: Mapping[str, str] | None = None,
    position: Position | None = None,
) -> tuple[Path, str]:
    path = substitute_path_variables(path_literal, environ, position)
    resolved = search_include(path, base_dir=base_dir, include_dirs=include_dirs)
    return resolved, read_file(resolved, position)


def resolve_include_lib(
    path_literal: str,
    code_paths: Sequence[str],
    *,
    base_dir: Path | None = None,
    include_dirs: Sequence[str] = (),
    environ: Mapping[str, str] | None = None,
    position: Position | None = None,
) -> tuple[Path, str]:
    """Resolve ``App/rest`` against ``App-*`` directories on the code path.

    Falls back to the plain ``-include`` search when no application matches.
    """
    path = substitute_path_variables(path_literal, environ, position)
    parts = path.parts
    if len(parts) > 1 and not path.is_absolute():
        app_dir = find_application_dir(parts[0], code_paths)
        if app_dir is not None:
            resolved = app_dir.joinpath(*parts[1:])
            return resolved, read_file(resolved, position)
    resolved = search_include(path, base_dir=base_dir, include_dirs=include_dirs)
    return resolved, read_file(resolved, position)
