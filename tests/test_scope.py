# tests/test_scope.py
"""
Tests for the per-scope variable tables and the global slot order.
"""

from pseudoflow.parser import parse_program
from pseudoflow.scope import MAIN_SCOPE, build_variable_tables, collect_scope_variables
from tests.conftest import ARRAY_SRC, FOR_SRC, FUNCTION_SRC, HELLO_SRC


def _tables(src):
    return build_variable_tables(parse_program(src).model)


class TestCollect:

    def test_first_seen_order_and_dedupe(self):
        body = parse_program("inicio\n  entero x\n  leer y\n  leer x\nfin\n").model.main_body
        assert collect_scope_variables(body) == ("x", "y")

    def test_subscripted_read_contributes_base_name(self):
        assert _tables(ARRAY_SRC).table_for(MAIN_SCOPE).names == ("numeros",)

    def test_loop_counter_contributes(self):
        assert "i" in _tables(FOR_SRC).table_for(MAIN_SCOPE)

    def test_parameters_come_first(self):
        body = parse_program("inicio\n  leer b\nfin\n").model.main_body
        assert collect_scope_variables(body, ("a",)) == ("a", "b")

    def test_writes_do_not_contribute(self):
        assert len(_tables(HELLO_SRC).table_for(MAIN_SCOPE)) == 0


class TestVariableTables:

    def test_scopes_main_then_functions(self):
        tables = _tables(FUNCTION_SRC)
        assert [t.scope_id for t in tables.tables] == ["main", "fn:Saludar"]
        assert tables.function_table(0).names == ("nombre",)

    def test_slot_order(self):
        tables = _tables(FUNCTION_SRC)
        assert tables.labels() == ["persona", "nombre"]
        assert tables.slot_index("main", "persona") == 0
        assert tables.slot_index("fn:Saludar", "nombre") == 1
        assert tables.slot_index("main", "nombre") is None

    def test_unknown_scope_is_empty(self):
        assert len(_tables(HELLO_SRC).table_for("fn:Nada")) == 0

    def test_repeated_function_names_stay_distinct(self):
        src = (
            "funcion F(a)\n  volver\nfin\n"
            "funcion F(b)\n  volver\nfin\n"
            "inicio\nfin\n"
        )
        tables = _tables(src)
        assert [t.scope_id for t in tables.tables] == ["main", "fn:F", "fn:F#2"]
        assert [s.scope_id for s in tables.slots] == ["fn:F", "fn:F#2"]

    def test_to_json(self):
        assert _tables(FUNCTION_SRC).to_json() == {
            "main": ["persona"],
            "fn:Saludar": ["nombre"],
        }
