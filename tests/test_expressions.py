# tests/test_expressions.py
"""
Tests for the textual expression rewrites shared by the emitters.
"""

import pytest

from pseudoflow.expressions import (
    is_string_literal,
    python_condition,
    sanitize_label,
    split_arguments,
    translate_index,
    translate_indices,
)


class TestIndexTranslation:

    @pytest.mark.parametrize("index, expected", [
        ("1", "0"),
        (" 3 ", "2"),
        ("i", "(i) - 1"),
        ("i + 1", "(i + 1) - 1"),
    ])
    def test_translate_index(self, index, expected):
        assert translate_index(index) == expected

    def test_every_subscript_rewritten(self):
        assert translate_indices("numeros[i] + numeros[2]") == "numeros[(i) - 1] + numeros[1]"

    def test_text_without_subscripts_unchanged(self):
        assert translate_indices("x!=0") == "x!=0"

    def test_nested_subscript(self):
        assert translate_indices("a[b[1]]") == "a[(b[0]) - 1]"

    def test_nested_subscript_with_variable(self):
        assert translate_indices("m[v[i] + 1] * 2") == "m[(v[(i) - 1] + 1) - 1] * 2"

    def test_brackets_inside_strings_untouched(self):
        assert translate_indices('v[1] == "a[1]"') == 'v[0] == "a[1]"'

    def test_unclosed_bracket_left_alone(self):
        assert translate_indices("a[1") == "a[1"


class TestSplitArguments:

    def test_commas_inside_strings(self):
        assert split_arguments('"Hola, mundo", nombre') == ['"Hola, mundo"', "nombre"]

    def test_escaped_quote(self):
        args = split_arguments(r'"dijo \"si, claro\"", x')
        assert args == [r'"dijo \"si, claro\""', "x"]

    def test_empty_arguments_dropped(self):
        assert split_arguments("a, , b,") == ["a", "b"]

    def test_string_literal_detection(self):
        assert is_string_literal('"hola"')
        assert not is_string_literal("hola")
        assert not is_string_literal('"')


class TestPythonCondition:

    @pytest.mark.parametrize("expr, expected", [
        ("a > 0 && b < 2", "a > 0 and b < 2"),
        ("a || !b", "a or not b"),
        ("x != 0", "x != 0"),
        ("!(a == 1)", "not (a == 1)"),
        ("v[1] == 0 && !listo", "v[0] == 0 and not listo"),
    ])
    def test_translation(self, expr, expected):
        assert python_condition(expr) == expected

    def test_inner_whitespace_kept(self):
        assert python_condition('nombre == "a  b"') == 'nombre == "a  b"'

    @pytest.mark.parametrize("expr", [
        's == "hola!"',
        's == "a && b"',
        's == "a || b"',
        r's == "dijo \"!\""',
    ])
    def test_string_literals_untouched(self, expr):
        assert python_condition(expr) == expr

    def test_operators_around_literal_rewritten(self):
        assert python_condition('!listo && s != "!"') == 'not listo and s != "!"'


class TestSanitizeLabel:

    def test_reserved_characters(self):
        assert sanitize_label('Si x > "a" [1]') == "Si x &gt; &quot;a&quot; (1)"

    def test_braces_and_ampersand(self):
        assert sanitize_label("{a & b}") == "(a &amp; b)"

    def test_ampersand_escaped_first(self):
        assert sanitize_label("<") == "&lt;"
