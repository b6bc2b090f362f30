# tests/test_pipeline.py
"""
End-to-end tests for analyze()/lint() and the configuration object.
"""

import pytest

import pseudoflow
from pseudoflow.config import AnalysisConfig
from pseudoflow.errors import ConfigError
from pseudoflow.pipeline import analyze, lint
from tests.conftest import ALL_VALID, ALL_VALID_IDS, FUNCTION_SRC, WHILE_SRC


class TestAnalyze:

    @pytest.mark.parametrize("src", ALL_VALID, ids=ALL_VALID_IDS)
    def test_deterministic(self, src):
        first = analyze(src)
        second = analyze(src)
        assert first.diagnostics == second.diagnostics
        assert first.model == second.model
        assert first.c_code == second.c_code
        assert first.python_code == second.python_code
        assert first.mermaid == second.mermaid

    def test_result_parts(self):
        result = analyze(FUNCTION_SRC)
        assert not result.has_errors
        assert result.trace_labels == ["persona", "nombre"]
        assert result.mermaid.startswith("flowchart TD\n")
        assert "int main(void) {" in result.c_code
        assert "async def __programa__(io):" in result.python_code
        assert result.flow_steps[0].label == "Inicio"

    def test_summary(self):
        summary = analyze(FUNCTION_SRC).summary()
        assert summary["program"] == "Demo"
        assert summary["functions"] == ["Saludar"]
        assert summary["main_statements"] == 2
        assert summary["errors"] == 0
        assert summary["warnings"] == 0

    def test_backends_still_run_on_errors(self):
        result = analyze("inicio\n\tleer x\n")
        assert result.has_errors
        assert "scanf" in result.c_code
        compile(result.python_code, "<test>", "exec")

    def test_package_exports(self):
        assert pseudoflow.analyze is analyze
        assert isinstance(pseudoflow.__version__, str)


class TestLint:

    def test_clean(self):
        assert lint(WHILE_SRC) == []

    def test_reports(self):
        diags = lint("inicio\n  hola\nfin\n")
        assert [d.code.code for d in diags] == ["PSC-1003"]


class TestConfig:

    def test_defaults_valid(self):
        assert AnalysisConfig().validate() == []

    @pytest.mark.parametrize("kwargs", [
        {"indent_width": 0},
        {"string_buffer_size": 1},
        {"python_indent": "xx"},
        {"python_indent": ""},
        {"entry_point": "no valido"},
    ])
    def test_invalid(self, kwargs):
        config = AnalysisConfig(**kwargs)
        assert config.validate()
        with pytest.raises(ConfigError):
            analyze(WHILE_SRC, config)

    def test_check_returns_self(self):
        config = AnalysisConfig(indent_width=4)
        assert config.check() is config
