import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from tests import _bootstrap  # noqa: F401
from erlpp.diag import IncludeError, InvalidInputError
from erlpp.includes import (
    find_application_dir,
    resolve_include,
    resolve_include_lib,
    search_include,
    substitute_path_variables,
)


class PathVariableTests(unittest.TestCase):
    def test_leading_variable_is_substituted(self) -> None:
        path = substitute_path_variables("$ROOT/inc/a.hrl", {"ROOT": "/opt/app"})
        self.assertEqual(path, Path("/opt/app/inc/a.hrl"))

    def test_only_first_component_is_substituted(self) -> None:
        path = substitute_path_variables("inc/$ROOT/a.hrl", {"ROOT": "/opt/app"})
        self.assertEqual(path, Path("inc/$ROOT/a.hrl"))

    def test_plain_path_unchanged(self) -> None:
        self.assertEqual(substitute_path_variables("a.hrl", {}), Path("a.hrl"))

    def test_undefined_variable(self) -> None:
        with self.assertRaises(IncludeError) as ctx:
            substitute_path_variables("$MISSING/a.hrl", {})
        self.assertIn("$MISSING", ctx.exception.message)

    def test_empty_path(self) -> None:
        with self.assertRaises(InvalidInputError):
            substitute_path_variables("", {})

    def test_process_environment_is_default(self) -> None:
        with patch.dict(os.environ, {"ERLPP_TEST_ROOT": "/srv"}):
            path = substitute_path_variables("$ERLPP_TEST_ROOT/a.hrl")
        self.assertEqual(path, Path("/srv/a.hrl"))


class SearchTests(unittest.TestCase):
    def test_base_dir_wins_over_include_dirs(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp) / "src"
            extra = Path(tmp) / "include"
            base.mkdir()
            extra.mkdir()
            (base / "a.hrl").write_text("-define(A, 1).\n", encoding="utf-8")
            (extra / "a.hrl").write_text("-define(A, 2).\n", encoding="utf-8")
            found = search_include(Path("a.hrl"), base_dir=base, include_dirs=[str(extra)])
            self.assertEqual(found, base / "a.hrl")

    def test_include_dirs_in_order(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            first = Path(tmp) / "first"
            second = Path(tmp) / "second"
            first.mkdir()
            second.mkdir()
            (second / "b.hrl").write_text("", encoding="utf-8")
            found = search_include(
                Path("b.hrl"), base_dir=None, include_dirs=[str(first), str(second)]
            )
            self.assertEqual(found, second / "b.hrl")

    def test_missing_file_returns_literal_path(self) -> None:
        self.assertEqual(search_include(Path("nope.hrl")), Path("nope.hrl"))

    def test_resolve_include_reads_text(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "a.hrl").write_text("-define(A, 1).\n", encoding="utf-8")
            path, text = resolve_include("$TOP/a.hrl", environ={"TOP": tmp})
        self.assertEqual(path, Path(tmp) / "a.hrl")
        self.assertEqual(text, "-define(A, 1).\n")

    def test_resolve_include_undecodable_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "bad.hrl").write_bytes(b"\xff\xfe bad.\n")
            with self.assertRaises(IncludeError) as ctx:
                resolve_include("bad.hrl", base_dir=Path(tmp))
        self.assertIsInstance(ctx.exception.__cause__, UnicodeDecodeError)
        self.assertIn("bad.hrl", ctx.exception.message)

    def test_resolve_include_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(IncludeError) as ctx:
                resolve_include("missing.hrl", base_dir=Path(tmp))
        self.assertIn("missing.hrl", ctx.exception.message)


class IncludeLibTests(unittest.TestCase):
    def test_find_application_dir_takes_first_sorted_match(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "stdlib-4.0").mkdir()
            (Path(tmp) / "stdlib-3.1").mkdir()
            (Path(tmp) / "kernel-9.0").mkdir()
            self.assertEqual(find_application_dir("stdlib", [tmp]), Path(tmp) / "stdlib-3.1")
            self.assertIsNone(find_application_dir("crypto", [tmp]))

    def test_find_application_dir_skips_regular_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "kernel-1.0.tar").write_text("", encoding="utf-8")
            (Path(tmp) / "kernel-9.0").mkdir()
            self.assertEqual(find_application_dir("kernel", [tmp]), Path(tmp) / "kernel-9.0")
            (Path(tmp) / "stdlib-1.0.ez").write_text("", encoding="utf-8")
            self.assertIsNone(find_application_dir("stdlib", [tmp]))

    def test_find_application_dir_searches_paths_in_order(self) -> None:
        with tempfile.TemporaryDirectory() as first, tempfile.TemporaryDirectory() as second:
            (Path(first) / "other-1.0").mkdir()
            (Path(second) / "kernel-9.0").mkdir()
            self.assertEqual(
                find_application_dir("kernel", [first, second]), Path(second) / "kernel-9.0"
            )

    def test_resolve_include_lib_rewrites_application(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            include = Path(tmp) / "kernel-9.0" / "include"
            include.mkdir(parents=True)
            (include / "file.hrl").write_text("-record(file_info, {size}).\n", encoding="utf-8")
            path, text = resolve_include_lib("kernel/include/file.hrl", [tmp])
        self.assertEqual(path, include / "file.hrl")
        self.assertEqual(text, "-record(file_info, {size}).\n")

    def test_resolve_include_lib_falls_back_to_search(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            local = Path(tmp) / "mylib" / "include"
            local.mkdir(parents=True)
            (local / "x.hrl").write_text("x.\n", encoding="utf-8")
            path, text = resolve_include_lib(
                "mylib/include/x.hrl", [], include_dirs=[tmp]
            )
        self.assertEqual(path, local / "x.hrl")
        self.assertEqual(text, "x.\n")

    def test_resolve_include_lib_with_path_variable(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "v.hrl").write_text("v.\n", encoding="utf-8")
            path, _ = resolve_include_lib("$LIBS/v.hrl", [], environ={"LIBS": tmp})
        self.assertEqual(path, Path(tmp) / "v.hrl")

    def test_resolve_include_lib_unresolved(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(IncludeError):
                resolve_include_lib("nosuchapp/include/x.hrl", [tmp])


if __name__ == "__main__":
    unittest.main()
