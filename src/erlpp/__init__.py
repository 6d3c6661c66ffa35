import argparse
import json
import logging
import sys
from collections.abc import Sequence
from typing import TextIO, cast

from erlpp.diag import Diagnostic, FrontendError
from erlpp.frontend import (
    format_directive,
    format_tokens,
    preprocess_source,
    read_source,
    render_tokens,
)
from erlpp.options import PreprocessOptions


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="erlpp", description="Run the Erlang macro preprocessor on source input."
    )
    parser.add_argument("input", help="path to an Erlang source file, or - to read from stdin")
    parser.add_argument("-I", dest="include_dirs", action="append", default=[], help="include path")
    parser.add_argument(
        "-pa",
        dest="code_paths",
        action="append",
        default=[],
        help="code path searched by -include_lib",
    )
    parser.add_argument(
        "-D", dest="defines", action="append", default=[], help="define macro NAME[=VALUE]"
    )
    parser.add_argument("-U", dest="undefs", action="append", default=[], help="undefine macro")
    parser.add_argument(
        "--diag-format",
        choices=("human", "json"),
        default="human",
        help="diagnostic output format",
    )
    parser.add_argument(
        "-Werror",
        dest="warn_as_error",
        action="store_true",
        help="treat -warning directives as errors",
    )
    parser.add_argument("--dump-tokens", action="store_true", help="print output token stream")
    parser.add_argument(
        "--dump-directives",
        action="store_true",
        help="print every recognized directive",
    )
    parser.add_argument(
        "--dump-include-trace",
        action="store_true",
        help="print include resolution trace",
    )
    parser.add_argument(
        "--dump-macro-table",
        action="store_true",
        help="print final macro table",
    )
    parser.add_argument("--verbose", action="store_true", help="log preprocessing steps")
    return parser


def _print_diagnostic(diagnostic: Diagnostic, diag_format: str) -> None:
    if diag_format == "json":
        print(
            json.dumps(
                {
                    "stage": diagnostic.stage,
                    "filename": diagnostic.filename,
                    "line": diagnostic.line,
                    "column": diagnostic.column,
                    "code": diagnostic.code,
                    "message": diagnostic.message,
                },
                separators=(",", ":"),
            ),
            file=sys.stderr,
        )
    else:
        print(diagnostic, file=sys.stderr)


def main(argv: Sequence[str] | None = None, *, stdin: TextIO | None = None) -> int:
    parser = _build_arg_parser()
    effective_argv = list(argv) if argv is not None else sys.argv[1:]
    try:
        args = parser.parse_args(effective_argv)
    except SystemExit as error:
        return cast(int, error.code)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="erlpp: %(levelname)s: %(message)s",
    )
    options = PreprocessOptions(
        include_dirs=tuple(args.include_dirs),
        code_paths=tuple(args.code_paths),
        defines=tuple(args.defines),
        undefs=tuple(args.undefs),
        warn_as_error=args.warn_as_error,
        diag_format=args.diag_format,
    )
    try:
        filename, source = read_source(args.input, stdin=stdin)
    except (OSError, UnicodeError) as error:
        print(f"erlpp: I/O error: {error}", file=sys.stderr)
        return 1
    try:
        result = preprocess_source(source, filename=filename, options=options)
    except FrontendError as error:
        _print_diagnostic(error.diagnostic, args.diag_format)
        return 1
    if args.diag_format == "json":
        for warning in result.warnings:
            _print_diagnostic(warning, args.diag_format)
    if args.dump_directives:
        for directive in result.directives:
            print(format_directive(directive))
    if args.dump_include_trace:
        for line in result.include_trace:
            print(line)
    if args.dump_macro_table:
        for line in result.macro_table:
            print(line)
    if args.dump_tokens:
        for line in format_tokens(result.tokens):
            print(line)
    if not (
        args.dump_directives
        or args.dump_include_trace
        or args.dump_macro_table
        or args.dump_tokens
    ):
        sys.stdout.write(render_tokens(result.tokens))
    return 0
