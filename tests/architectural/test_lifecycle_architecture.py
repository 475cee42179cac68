"""Architectural tests for the lifecycle service.

Static, file/AST-based checks: they read sources under the project root and
never import application modules, so layering breaks surface even when the
code would not import.
"""

from __future__ import annotations

import ast
from pathlib import Path
from typing import Iterable, List, Set

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
APP_DIR = PROJECT_ROOT / "app"
LOGIC_DIR = APP_DIR / "logic"
MIGRATIONS_DIR = PROJECT_ROOT / "migrations"


# --------------------
# Helper utilities
# --------------------


def _parse(path: Path) -> ast.Module:
    try:
        return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    except SyntaxError as exc:
        pytest.fail(f"Failed to parse {path}: {exc}")


def _imported_modules(tree: ast.AST) -> Set[str]:
    out: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            out.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            out.add(node.module)
    return out


def _py_files(root: Path) -> Iterable[Path]:
    return sorted(p for p in root.rglob("*.py") if "__pycache__" not in p.parts)


def _class_bases(tree: ast.AST) -> dict:
    bases = {}
    for node in ast.walk(tree):
        if isinstance(node, ast.ClassDef):
            bases[node.name] = [b.id for b in node.bases if isinstance(b, ast.Name)]
    return bases


# --------------------
# Layering
# --------------------


def test_logic_layer_does_not_depend_on_web_framework():
    offenders: List[str] = []
    for path in _py_files(LOGIC_DIR):
        mods = _imported_modules(_parse(path))
        if any(m == "fastapi" or m.startswith(("fastapi.", "starlette", "app.routes", "app.http")) for m in mods):
            offenders.append(path.name)
    assert offenders == [], f"logic modules importing the web layer: {offenders}"


def test_only_store_implementations_touch_sqlalchemy():
    allowed = {"repository_entities.py"}
    offenders = [
        p.name
        for p in _py_files(LOGIC_DIR)
        if p.name not in allowed and any(m.startswith("sqlalchemy") for m in _imported_modules(_parse(p)))
    ]
    assert offenders == []


def test_engine_reaches_the_store_only_through_the_contract():
    for name in ("cascade_delete.py", "batch_writer.py", "list_ordering.py", "snapshots.py"):
        mods = _imported_modules(_parse(LOGIC_DIR / name))
        assert "app.logic.inmemory_state" not in mods, name
        assert "app.logic.repository_entities" not in mods, name


def test_routes_do_not_hardcode_collection_names():
    for path in _py_files(APP_DIR / "routes"):
        for node in ast.walk(_parse(path)):
            if isinstance(node, ast.Constant) and isinstance(node.value, str):
                assert node.value not in {"weld-logs", "project-documents", "welds"}, (
                    f"{path.name} hardcodes collection {node.value!r}"
                )


# --------------------
# Error taxonomy
# --------------------


def test_lifecycle_errors_share_one_base():
    bases = _class_bases(_parse(LOGIC_DIR / "errors.py"))
    expected = {"AuthRequiredError", "EntityNotFound", "QueryFailure", "BatchCommitFailure", "InvalidGraphError"}
    assert expected <= set(bases)
    for name in expected:
        assert bases[name] == ["LifecycleError"], name
    assert bases["LifecycleError"] == ["Exception"]


def test_every_lifecycle_error_has_an_http_mapping():
    tree = _parse(APP_DIR / "http" / "problem.py")
    mapped: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.AnnAssign) and getattr(node.target, "id", None) == "LIFECYCLE_STATUS":
            mapped = {k.id for k in node.value.keys if isinstance(k, ast.Name)}
    assert mapped == {"AuthRequiredError", "EntityNotFound", "QueryFailure", "BatchCommitFailure", "InvalidGraphError"}


def test_no_bare_except_in_application_code():
    offenders = [
        f"{p.relative_to(APP_DIR)}:{node.lineno}"
        for p in _py_files(APP_DIR)
        for node in ast.walk(_parse(p))
        if isinstance(node, ast.ExceptHandler) and node.type is None
    ]
    assert offenders == []


# --------------------
# Graphs and schema
# --------------------


def test_cascade_graphs_are_declared_as_module_constants():
    tree = _parse(LOGIC_DIR / "cascade_graph.py")
    names = {
        t.id
        for node in tree.body
        if isinstance(node, ast.Assign)
        for t in node.targets
        if isinstance(t, ast.Name)
    }
    assert {
        "PROJECT_GRAPH",
        "WELD_LOG_GRAPH",
        "DOCUMENT_LIBRARY_GRAPH",
        "PROJECT_SECTION_GRAPH",
        "LIBRARY_SECTION_GRAPH",
    } <= names


def test_migrations_create_the_document_table():
    files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    assert files, "no migrations found"
    sql = "\n".join(p.read_text(encoding="utf-8") for p in files).lower()
    assert "create table" in sql and "entity_document" in sql
    for column in ("collection", "status", "data"):
        assert column in sql
