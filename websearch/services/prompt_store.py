"""Prompt templates kept in a JSON catalog, rendered with string.Template."""
from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"

# path -> (mtime_ns, catalog); an edited file is picked up on next use
_catalogs: dict[Path, tuple[int, dict[str, Any]]] = {}


def load_catalog(path: Path | None = None) -> dict[str, Any]:
    catalog_path = path or PROMPTS_PATH
    mtime_ns = catalog_path.stat().st_mtime_ns
    cached = _catalogs.get(catalog_path)
    if cached is not None and cached[0] == mtime_ns:
        return cached[1]

    payload = json.loads(catalog_path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Prompt catalog {catalog_path} must be a JSON object.")
    _catalogs[catalog_path] = (mtime_ns, payload)
    return payload


def get_prompt(key: str, *, path: Path | None = None) -> str:
    """Return the raw template stored under a dotted key such as ``summarizer.answer_prompt``."""
    node: Any = load_catalog(path)
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(f"Prompt key not found: {key}")
        node = node[part]
    if not isinstance(node, str):
        raise TypeError(f"Prompt key must map to a string: {key}")
    return node


def render_prompt(key: str, *, path: Path | None = None, **values: Any) -> str:
    try:
        return Template(get_prompt(key, path=path)).substitute(**values)
    except KeyError as exc:
        if str(exc.args[0]).startswith("Prompt key not found"):
            raise
        raise KeyError(f"Missing template value '{exc.args[0]}' for prompt '{key}'") from exc


def clear_prompt_cache() -> None:
    _catalogs.clear()
