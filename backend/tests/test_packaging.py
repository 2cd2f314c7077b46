"""
The install only ships the ``trivia`` package; ``main.py`` and ``run.py``
stay run-from-checkout entry points.
"""
from __future__ import annotations

from pathlib import Path

PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def test_entry_points_are_not_installed_as_top_level_modules():
    text = PYPROJECT.read_text(encoding="utf-8")
    assert "py-modules" not in text
    assert 'include = ["trivia*"]' in text


def test_entry_points_exist_in_checkout():
    backend = PYPROJECT.parent / "backend"
    assert (backend / "main.py").is_file()
    assert (backend / "run.py").is_file()
