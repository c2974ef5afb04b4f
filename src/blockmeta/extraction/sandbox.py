"""Execution of rule-authored extraction scripts.

A rule script is the body of a Python function called with exactly five
positional arguments::

    def extract(document, url, PropertyType, clean_url, base_meta):
        <script>

``document`` is the parsed page (BeautifulSoup), ``url`` the current URL,
``PropertyType`` the property type enum, ``clean_url`` a helper that drops
query string and fragment, and ``base_meta`` the generic link/title/cover
properties. The script returns a list of properties, either as
``{"name", "type", "value", "typeArgs"}`` dicts or Property objects. An
empty script behaves like ``return base_meta``.

Scripts are configuration, not trusted code. Before running, the source
is checked with ``ast``: imports, ``global``/``nonlocal``, generators and
any dunder name or private attribute are rejected. The function runs with
a reduced builtins table and a fresh ``re`` namespace (the matching
functions and flags, not the module) as its only globals, and nothing is
kept between invocations. This keeps honest scripts honest; it
is not a security boundary against a determined attacker.
"""

from __future__ import annotations

import ast
import builtins
import copy
import functools
import re
import textwrap
import types
from typing import Any, Mapping

from loguru import logger

from blockmeta.core.exceptions import ScriptExecutionError
from blockmeta.core.types import Property, PropertyType, Rule

from .generic import base_meta as build_base_meta
from .generic import clean_url

FUNCTION_NAME = "extract"
PARAMETERS = ("document", "url", "PropertyType", "clean_url", "base_meta")

SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "dict", "divmod", "enumerate", "filter",
    "float", "frozenset", "int", "isinstance", "len", "list", "map", "max",
    "min", "next", "range", "reversed", "round", "set", "sorted", "str",
    "sum", "tuple", "zip",
    "Exception", "AttributeError", "IndexError", "KeyError", "TypeError",
    "ValueError",
)
SAFE_BUILTINS = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}

SAFE_RE_NAMES = (
    "compile", "escape", "findall", "finditer", "fullmatch", "match", "search",
    "split", "sub", "subn", "error",
    "A", "ASCII", "I", "IGNORECASE", "M", "MULTILINE", "S", "DOTALL", "U",
    "UNICODE", "X", "VERBOSE",
)


def _re_namespace() -> types.SimpleNamespace:
    return types.SimpleNamespace(**{name: getattr(re, name) for name in SAFE_RE_NAMES})


class ScriptValidator(ast.NodeVisitor):
    """Collect constructs a rule script may not use."""

    def __init__(self) -> None:
        self.problems: list[str] = []

    def _reject(self, node: ast.AST, what: str) -> None:
        self.problems.append(f"line {getattr(node, 'lineno', '?')}: {what}")

    def visit_Import(self, node: ast.Import) -> None:
        self._reject(node, "import is not allowed")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._reject(node, "import is not allowed")

    def visit_Global(self, node: ast.Global) -> None:
        self._reject(node, "global is not allowed")

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self._reject(node, "nonlocal is not allowed")

    def visit_Yield(self, node: ast.Yield) -> None:
        self._reject(node, "yield is not allowed")

    def visit_YieldFrom(self, node: ast.YieldFrom) -> None:
        self._reject(node, "yield is not allowed")

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._reject(node, "async functions are not allowed")

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            self._reject(node, f"name '{node.id}' is not allowed")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_"):
            self._reject(node, f"attribute '{node.attr}' is not allowed")
        self.generic_visit(node)


def wrap_source(body: str) -> str:
    """Wrap a script body into the extraction function definition."""
    body = textwrap.dedent(body or "").strip("\n")
    if not body.strip():
        body = "return base_meta"
    return f"def {FUNCTION_NAME}({', '.join(PARAMETERS)}):\n" + textwrap.indent(body, "    ")


@functools.lru_cache(maxsize=64)
def _compile(source: str, filename: str):
    tree = ast.parse(source, filename=filename)
    validator = ScriptValidator()
    validator.visit(tree)
    if validator.problems:
        raise ValueError("; ".join(validator.problems))
    return compile(tree, filename, "exec")


def compile_script(rule: Rule):
    """Validate and compile a rule's script.

    Raises:
        ScriptExecutionError: If the script does not parse or uses a
            forbidden construct.
    """
    try:
        return _compile(wrap_source(rule.source), f"<rule:{rule.name}>")
    except SyntaxError as e:
        raise ScriptExecutionError(rule.name, f"syntax error at line {e.lineno}: {e.msg}") from e
    except ValueError as e:
        raise ScriptExecutionError(rule.name, str(e)) from e


def _coerce_result(rule: Rule, result: Any) -> list[Property]:
    if isinstance(result, (str, bytes, Mapping)) or not isinstance(result, (list, tuple)):
        raise ScriptExecutionError(
            rule.name, f"script must return a list of properties, got {type(result).__name__}"
        )

    properties: list[Property] = []
    positions: dict[str, int] = {}
    for i, item in enumerate(result):
        if isinstance(item, Property):
            prop = copy.deepcopy(item)
        elif isinstance(item, Mapping):
            try:
                prop = Property.from_dict(item)
            except ValueError as e:
                raise ScriptExecutionError(rule.name, f"item #{i}: {e}") from e
        else:
            raise ScriptExecutionError(
                rule.name, f"item #{i} is not a property: {type(item).__name__}"
            )

        # A later property with the same name replaces the earlier one.
        if prop.name in positions:
            properties[positions[prop.name]] = prop
        else:
            positions[prop.name] = len(properties)
            properties.append(prop)
    return properties


def run_script(rule: Rule, document: Any, url: str) -> list[Property]:
    """Run a rule's script against a parsed document.

    Args:
        rule: Rule carrying the script.
        document: Parsed page handed to the script.
        url: Current page URL.

    Returns:
        Extracted properties, names unique.

    Raises:
        ScriptExecutionError: If the script fails to compile, raises, or
            returns anything but a list of properties.
    """
    code = compile_script(rule)
    namespace: dict[str, Any] = {"__builtins__": dict(SAFE_BUILTINS), "re": _re_namespace()}
    exec(code, namespace)  # noqa: S102
    extract = namespace[FUNCTION_NAME]

    meta = build_base_meta(document, url)
    try:
        result = extract(document, url, PropertyType, clean_url, meta)
    except ScriptExecutionError:
        raise
    except Exception as e:
        logger.debug(f"Script for rule '{rule.name}' raised {type(e).__name__}: {e}")
        raise ScriptExecutionError(rule.name, f"{type(e).__name__}: {e}") from e

    properties = _coerce_result(rule, result)
    logger.debug(f"Rule '{rule.name}' extracted {len(properties)} properties")
    return properties
