import unittest

from tests import _bootstrap  # noqa: F401
from erlpp.lexer import (
    LexerError,
    Position,
    TokenKind,
    lex,
    make_string_token,
    quote_string,
    strip_trivia,
)


class LexerTests(unittest.TestCase):
    def _kinds(self, source: str) -> list[tuple[TokenKind, str]]:
        return [(token.kind, token.text) for token in lex(source)]

    def test_lex_function_clause(self) -> None:
        self.assertEqual(
            self._kinds("foo(X) -> ok."),
            [
                (TokenKind.ATOM, "foo"),
                (TokenKind.SYMBOL, "("),
                (TokenKind.VARIABLE, "X"),
                (TokenKind.SYMBOL, ")"),
                (TokenKind.WHITESPACE, " "),
                (TokenKind.SYMBOL, "->"),
                (TokenKind.WHITESPACE, " "),
                (TokenKind.ATOM, "ok"),
                (TokenKind.SYMBOL, "."),
                (TokenKind.EOF, ""),
            ],
        )

    def test_lex_empty_source(self) -> None:
        tokens = lex("")
        self.assertEqual(len(tokens), 1)
        self.assertEqual(tokens[0].kind, TokenKind.EOF)

    def test_longest_symbol_match(self) -> None:
        self.assertEqual(
            [token.text for token in lex("A=:=B") if token.kind == TokenKind.SYMBOL],
            ["=:="],
        )
        self.assertEqual(
            [token.text for token in lex("<<\"a\">>") if token.kind == TokenKind.SYMBOL],
            ["<<", ">>"],
        )

    def test_stringify_operator_is_one_symbol(self) -> None:
        self.assertEqual(
            self._kinds("??X")[:2],
            [(TokenKind.SYMBOL, "??"), (TokenKind.VARIABLE, "X")],
        )

    def test_comment_and_whitespace_are_trivia(self) -> None:
        tokens = lex("% note\nok")
        self.assertEqual(tokens[0].kind, TokenKind.COMMENT)
        self.assertEqual(tokens[0].text, "% note")
        self.assertEqual(tokens[1].kind, TokenKind.WHITESPACE)
        self.assertTrue(tokens[0].is_trivia)
        self.assertTrue(tokens[1].is_trivia)
        self.assertFalse(tokens[2].is_trivia)

    def test_variable_with_underscore(self) -> None:
        self.assertEqual(lex("_Acc")[0].kind, TokenKind.VARIABLE)
        self.assertEqual(lex("_")[0].kind, TokenKind.VARIABLE)

    def test_atom_values(self) -> None:
        self.assertEqual(lex("hello")[0].value, "hello")
        quoted = lex("'hello world'")[0]
        self.assertEqual(quoted.kind, TokenKind.ATOM)
        self.assertEqual(quoted.value, "hello world")

    def test_string_escapes(self) -> None:
        token = lex(r'"a\nb\"c\x41\x{42}\101"')[0]
        self.assertEqual(token.kind, TokenKind.STRING)
        self.assertEqual(token.value, 'a\nb"cABA')

    def test_char_literals(self) -> None:
        self.assertEqual(lex("$a")[0].value, "a")
        self.assertEqual(lex(r"$\n")[0].value, "\n")
        self.assertEqual(lex("$a")[0].kind, TokenKind.CHAR)

    def test_numbers(self) -> None:
        self.assertEqual(lex("1_000")[0].value, 1000)
        self.assertEqual(lex("16#FF")[0].value, 255)
        float_token = lex("1.5e-3")[0]
        self.assertEqual(float_token.kind, TokenKind.FLOAT)
        self.assertAlmostEqual(float_token.value, 0.0015)

    def test_integer_before_dot(self) -> None:
        self.assertEqual(
            self._kinds("1."),
            [(TokenKind.INTEGER, "1"), (TokenKind.SYMBOL, "."), (TokenKind.EOF, "")],
        )

    def test_positions_track_lines_and_offsets(self) -> None:
        tokens = lex("a\n  b")
        b = tokens[2]
        self.assertEqual(b.text, "b")
        self.assertEqual(b.start, Position(2, 3, 4))
        self.assertEqual(b.end, Position(2, 4, 5))
        self.assertEqual(str(b.start), "2:3")

    def test_unterminated_string(self) -> None:
        with self.assertRaises(LexerError) as ctx:
            lex('"abc')
        self.assertEqual((ctx.exception.line, ctx.exception.column), (1, 1))
        self.assertIn("Unterminated string", str(ctx.exception))

    def test_unterminated_quoted_atom(self) -> None:
        with self.assertRaises(LexerError):
            lex("ok 'abc")

    def test_unexpected_character(self) -> None:
        with self.assertRaises(LexerError) as ctx:
            lex("a `")
        self.assertEqual((ctx.exception.line, ctx.exception.column), (1, 3))

    def test_non_ascii_digit_is_rejected(self) -> None:
        for source in ("x = \u00b2.", "X = \u0663."):
            with self.subTest(source=source):
                with self.assertRaises(LexerError) as ctx:
                    lex(source)
                self.assertEqual((ctx.exception.line, ctx.exception.column), (1, 5))

    def test_float_needs_ascii_fraction(self) -> None:
        self.assertEqual(
            [token.kind for token in lex("1.5")],
            [TokenKind.FLOAT, TokenKind.EOF],
        )
        with self.assertRaises(LexerError):
            lex("1.\u00b2")

    def test_quote_string(self) -> None:
        self.assertEqual(quote_string('say "hi"\n'), '"say \\"hi\\"\\n"')
        token = make_string_token("x + y", Position(3, 4, 20))
        self.assertEqual(token.kind, TokenKind.STRING)
        self.assertEqual(token.value, "x + y")
        self.assertEqual(token.start, Position(3, 4, 20))
        self.assertEqual(token.end, Position(3, 11, 27))

    def test_strip_trivia(self) -> None:
        tokens = [token for token in lex("  a b  ") if token.kind != TokenKind.EOF]
        self.assertEqual([token.text for token in strip_trivia(tokens)], ["a", " ", "b"])
        self.assertEqual(strip_trivia(tokens[:1]), [])


if __name__ == "__main__":
    unittest.main()
