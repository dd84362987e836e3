from __future__ import annotations

import pytest

from deepresearch.services.prompt_store import render_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt("analysis.progress", round_number=2, total_rounds=5)
    assert "round 2 of 5" in prompt


def test_render_prompt_joins_multiline_entries():
    prompt = render_prompt("analysis.persona")
    assert prompt.startswith("# Role\n")
    assert prompt.count("\n") >= 2


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError):
        render_prompt("analysis.topic")


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")
