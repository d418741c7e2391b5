from __future__ import annotations

import ast
from pathlib import Path


def _iter_target_files(repo_root: Path) -> list[Path]:
    files = [repo_root / "main.py"] if (repo_root / "main.py").exists() else []
    files.extend(
        path
        for path in (repo_root / "control_combustible").rglob("*.py")
        if "__pycache__" not in path.parts
    )
    return sorted(set(files))


def _find_print_calls(path: Path) -> list[int]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    return sorted(
        node.lineno
        for node in ast.walk(tree)
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id == "print"
    )


def test_no_print_policy() -> None:
    repo_root = Path(__file__).resolve().parents[1]

    violations = [
        f"{file_path.relative_to(repo_root).as_posix()}:{lineno}"
        for file_path in _iter_target_files(repo_root)
        for lineno in _find_print_calls(file_path)
    ]

    # La CLI escribe en stdout con sys.stdout.write; el resto usa logging.
    assert not violations, "Se detectaron usos prohibidos de print():\n" + "\n".join(violations)
