"""Prompt catalog backed by ``prompts/prompts.json``.

Entries are addressed by dotted keys (``analysis.persona``). An entry is either
a string or a list of lines joined with newlines. Placeholders use
``string.Template`` syntax, so substituted values may contain ``$`` freely.
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


@lru_cache(maxsize=4)
def _load_catalog(path: Path = PROMPTS_PATH) -> dict[str, Any]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Prompt catalog must be a JSON object: {path}")
    return payload


def _lookup(key: str) -> str:
    node: Any = _load_catalog()
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(f"Prompt key not found: {key}")
        node = node[part]

    if isinstance(node, str):
        return node
    if isinstance(node, list) and all(isinstance(line, str) for line in node):
        return "\n".join(node)
    raise TypeError(f"Prompt key must map to a string or list of lines: {key}")


def render_prompt(key: str, **values: Any) -> str:
    template = Template(_lookup(key))
    try:
        return template.substitute(**values)
    except KeyError as exc:
        raise KeyError(f"Missing template value '{exc.args[0]}' for prompt '{key}'") from exc
