from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
PACKAGE = "control_combustible"
PACKAGE_ROOT = PROJECT_ROOT / PACKAGE

LAYERS = {"core", "domain", "application", "infrastructure", "bootstrap", "entrypoints"}

FORBIDDEN_LAYERS = {
    "core": {"domain", "application", "infrastructure", "bootstrap", "entrypoints"},
    "domain": {"application", "infrastructure", "bootstrap", "entrypoints"},
    "application": {"infrastructure", "bootstrap", "entrypoints"},
}

TECHNICAL_LIBRARIES_BLOCKED = {"sqlite3", "gspread", "google", "requests", "socket"}


@dataclass(frozen=True)
class ImportRecord:
    source_file: str
    source_layer: str
    imported_module: str


def _layer_from_module(module: str) -> str | None:
    parts = module.split(".")
    if len(parts) >= 2 and parts[0] == PACKAGE and parts[1] in LAYERS:
        return parts[1]
    return None


def _iter_imports(py_file: Path) -> list[ImportRecord]:
    tree = ast.parse(py_file.read_text(encoding="utf-8"), filename=str(py_file))
    relative = py_file.relative_to(PROJECT_ROOT)
    source_layer = relative.parts[1]
    imports: list[ImportRecord] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            modules = [node.module]
        else:
            continue
        imports.extend(ImportRecord(relative.as_posix(), source_layer, module) for module in modules)
    return imports


def _python_files(layer: str) -> list[Path]:
    return sorted((PACKAGE_ROOT / layer).rglob("*.py"))


@pytest.mark.parametrize("layer", sorted(FORBIDDEN_LAYERS))
def test_capas_internas_no_dependen_de_capas_externas(layer: str) -> None:
    violations = [
        f"{record.source_file} -> {record.imported_module}"
        for py_file in _python_files(layer)
        for record in _iter_imports(py_file)
        if _layer_from_module(record.imported_module) in FORBIDDEN_LAYERS[layer]
        or record.imported_module.split(".")[0] in TECHNICAL_LIBRARIES_BLOCKED
    ]

    assert violations == []


def test_cada_capa_tiene_modulos() -> None:
    for layer in LAYERS:
        assert _python_files(layer), f"Capa vacía: {layer}"
