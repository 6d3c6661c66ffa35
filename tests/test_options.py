import unittest

from tests import _bootstrap  # noqa: F401
from erlpp.options import DEFAULT_MAX_INCLUDE_DEPTH, PreprocessOptions, normalize_options


class OptionsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        options = PreprocessOptions()
        self.assertEqual(options.include_dirs, ())
        self.assertEqual(options.code_paths, ())
        self.assertEqual(options.max_include_depth, DEFAULT_MAX_INCLUDE_DEPTH)
        self.assertFalse(options.warn_as_error)
        self.assertEqual(options.diag_format, "human")

    def test_invalid_diag_format(self) -> None:
        with self.assertRaises(ValueError):
            PreprocessOptions(diag_format="xml")  # type: ignore[arg-type]

    def test_invalid_include_depth(self) -> None:
        with self.assertRaises(ValueError):
            PreprocessOptions(max_include_depth=0)

    def test_normalize_options(self) -> None:
        options = PreprocessOptions(defines=("debug",))
        self.assertIs(normalize_options(options), options)
        self.assertEqual(normalize_options(None), PreprocessOptions())


if __name__ == "__main__":
    unittest.main()
