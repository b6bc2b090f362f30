# tests/conftest.py
"""
Shared pseudocode samples and helpers for the pseudoflow test suite.

Every sample is a complete program laid out with the default two-space
indentation unit, so it parses without diagnostics unless its name says
otherwise.
"""

import asyncio

import pytest

from pseudoflow.pipeline import analyze
from pseudoflow.runtime import run_program


# ═══════════════════════════════════════════════════════════════════
#  Sample programs
# ═══════════════════════════════════════════════════════════════════

HELLO_SRC = """\
programa Saludo
inicio
  escribir "Hola mundo"
fin
"""

WHILE_SRC = """\
inicio
  entero x
  leer x
  mientras(x!=0)
    escribir "x = ", x
    leer x
  finmientras
fin
"""

FOR_SRC = """\
inicio
  para i desde 1 hasta 3 hacer
    escribir "i=", i
  finpara
fin
"""

DESCENDING_FOR_SRC = """\
inicio
  para i desde 3 hasta 1 hacer
    escribir "i=", i
  finpara
fin
"""

ARRAY_SRC = """\
inicio
  entero numeros[5]
  leer numeros[1]
  escribir "primero: ", numeros[1]
fin
"""

IF_ELSE_SRC = """\
inicio
  entero edad
  leer edad
  si edad >= 18
    entonces
      escribir "mayor"
    sino
      escribir "menor"
  finsi
fin
"""

ELSE_ONLY_SRC = """\
inicio
  leer x
  si x>=18
    entonces
    sino
      escribir "menor"
  finsi
fin
"""

REPEAT_SRC = """\
inicio
  entero n
  repetir
    escribir "vuelta"
  hasta(n == 0)
fin
"""

FUNCTION_SRC = """\
programa Demo
funcion Saludar(nombre)
  escribir "Hola ", nombre
  volver
fin
inicio
  leer persona
  Saludar(persona)
fin
"""

UNSET_SRC = """\
inicio
  escribir "inicio"
  leer x
fin
"""

NESTED_SRC = """\
inicio
  si a
    entonces
      mientras(b)
        leer x
      finmientras
  finsi
fin
"""

ALL_VALID = [
    HELLO_SRC,
    WHILE_SRC,
    FOR_SRC,
    DESCENDING_FOR_SRC,
    ARRAY_SRC,
    IF_ELSE_SRC,
    ELSE_ONLY_SRC,
    REPEAT_SRC,
    FUNCTION_SRC,
    UNSET_SRC,
    NESTED_SRC,
]

ALL_VALID_IDS = [
    "hello", "while", "for", "descending_for", "array", "if_else",
    "else_only", "repeat", "function", "unset", "nested",
]


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════

def run_source(source, inputs=()):
    """Analyse *source*, run its instrumented program, return the outcome."""
    result = analyze(source)
    return asyncio.run(run_program(result.python_program, inputs))


@pytest.fixture
def write_source(tmp_path):
    """Write a pseudocode file under tmp_path and return its path as str."""
    def _write(text, name="programa.psc"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write
