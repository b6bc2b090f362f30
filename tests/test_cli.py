# tests/test_cli.py
"""
Tests for the command-line front end (pseudoflow.main).
"""

import io
import json

import pytest

from pseudoflow.main import (
    EXIT_ERROR, EXIT_EXECUTION, EXIT_INFRA, EXIT_OK, main,
)
from tests.conftest import FOR_SRC, FUNCTION_SRC, HELLO_SRC, WHILE_SRC

TAB_SRC = "inicio\n\tleer x\nfin\n"


class TestCheck:

    def test_clean_program(self, write_source, capsys):
        assert main(["check", write_source(HELLO_SRC)]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_errors_in_gcc_format(self, write_source, capsys):
        path = write_source(TAB_SRC)
        assert main(["check", path]) == EXIT_ERROR
        out = capsys.readouterr().out
        assert f"{path}:2: error: " in out
        assert "[PSC-1001]" in out

    def test_json_format(self, write_source, capsys):
        assert main(["check", write_source(TAB_SRC), "--format", "json"]) == EXIT_ERROR
        records = [json.loads(ln) for ln in capsys.readouterr().out.splitlines()]
        assert [r["code"] for r in records] == ["PSC-1001", "PSC-1002"]

    def test_summary_format(self, write_source, capsys):
        main(["check", write_source(TAB_SRC), "-f", "summary"])
        assert "--- 2 diagnostic(s), 2 error(s) ---" in capsys.readouterr().out

    def test_warnings_only_exit_ok(self, write_source):
        assert main(["check", write_source("inicio\n  hola\nfin\n")]) == EXIT_OK

    def test_lint_alias(self, write_source):
        assert main(["lint", write_source(HELLO_SRC)]) == EXIT_OK


class TestBackends:

    def test_c_to_stdout(self, write_source, capsys):
        assert main(["c", write_source(HELLO_SRC)]) == EXIT_OK
        assert "int main(void) {" in capsys.readouterr().out

    def test_c_to_file(self, write_source, tmp_path):
        out = tmp_path / "build" / "programa.c"
        assert main(["c", write_source(HELLO_SRC), "-o", str(out)]) == EXIT_OK
        assert out.read_text(encoding="utf-8").startswith("#include <stdio.h>")

    def test_c_reports_errors_on_stderr(self, write_source, capsys):
        assert main(["c", write_source(TAB_SRC)]) == EXIT_ERROR
        captured = capsys.readouterr()
        assert "#include <stdio.h>" in captured.out
        assert "[PSC-1001]" in captured.err

    def test_python(self, write_source, capsys):
        assert main(["python", write_source(HELLO_SRC)]) == EXIT_OK
        assert "async def __programa__(io):" in capsys.readouterr().out

    def test_flow_mermaid(self, write_source, capsys):
        assert main(["flow", write_source(WHILE_SRC)]) == EXIT_OK
        assert capsys.readouterr().out.startswith("flowchart TD\n")

    def test_flow_json(self, write_source, capsys):
        assert main(["flow", write_source(WHILE_SRC), "-f", "json"]) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["nodes"][0]["label"] == "Inicio"

    def test_steps(self, write_source, capsys):
        assert main(["steps", write_source(FOR_SRC)]) == EXIT_OK
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "  0  Inicio"
        assert lines[3] == "  3  Fin para  (vuelve a 1)"

    def test_vars(self, write_source, capsys):
        assert main(["vars", write_source(FUNCTION_SRC)]) == EXIT_OK
        assert capsys.readouterr().out.splitlines() == [
            "main: persona",
            "fn:Saludar: nombre",
        ]

    def test_vars_json(self, write_source, capsys):
        assert main(["vars", write_source(FUNCTION_SRC), "-f", "json"]) == EXIT_OK
        assert json.loads(capsys.readouterr().out) == {
            "main": ["persona"],
            "fn:Saludar": ["nombre"],
        }

    def test_indent_width_option(self, write_source):
        path = write_source("inicio\n    leer x\nfin\n")
        assert main(["check", path]) == EXIT_ERROR
        assert main(["check", path, "--indent-width", "4"]) == EXIT_OK


class TestRun:

    def test_scripted_input(self, write_source, capsys):
        assert main(["run", write_source(FUNCTION_SRC), "--input", "Ana"]) == EXIT_OK
        assert capsys.readouterr().out == "Hola Ana\n"

    def test_trace_on_stderr(self, write_source, capsys):
        assert main(["run", write_source(FUNCTION_SRC), "-i", "Ana", "--trace"]) == EXIT_OK
        err = capsys.readouterr().err
        assert "[linea 7] persona='Ana'" in err
        assert "[linea 4] nombre=-" in err

    def test_execution_failure(self, write_source, capsys):
        path = write_source("inicio\n  Desconocida(1)\nfin\n")
        assert main(["run", path]) == EXIT_EXECUTION
        assert "Error (linea 2)" in capsys.readouterr().err

    def test_refuses_program_with_errors(self, write_source):
        assert main(["run", write_source(TAB_SRC), "-i", "1"]) == EXIT_ERROR

    def test_force(self, write_source, capsys):
        src = 'inicio\n\tescribir "hola"\nfin\n'
        assert main(["run", write_source(src), "--force"]) == EXIT_OK
        assert capsys.readouterr().out == "hola\n"


class TestInfrastructure:

    def test_missing_file(self, tmp_path):
        assert main(["check", str(tmp_path / "nada.psc")]) == EXIT_INFRA

    def test_no_command(self, capsys):
        assert main([]) == EXIT_INFRA

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert "pseudoflow" in capsys.readouterr().out

    def test_invalid_config(self, write_source):
        assert main(["check", write_source(HELLO_SRC), "--indent-width", "0"]) == EXIT_INFRA

    def test_stdin_source(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(HELLO_SRC))
        assert main(["check", "-"]) == EXIT_OK
