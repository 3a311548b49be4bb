"""
Tests for the recommendation debug CLI.
"""

import importlib.util
import json
import sys
from pathlib import Path
from unittest.mock import patch

DEBUG_SCRIPT = Path(__file__).parent.parent / "debug" / "debug_recommendations.py"


def _load_debug_module():
    spec = importlib.util.spec_from_file_location("debug_recommendations", DEBUG_SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_debug_cli_prints_recommendations(tmp_path, capsys):
    catalog = tmp_path / "catalog.json"
    catalog.write_text(json.dumps([
        {"id": "evt-1", "type": "event", "categories": ["technology"], "title": "Hack Night",
         "interaction_data": {"views": 10, "clicks": 5}},
        {"id": "club-1", "type": "club", "categories": ["sports"], "title": "Climbing Club"},
    ]), encoding="utf-8")
    interactions = tmp_path / "interactions"
    interactions.mkdir()
    (interactions / "evt-1.jsonl").write_text(json.dumps({
        "user_id": "alice", "item_id": "evt-1", "interaction_type": "click",
        "timestamp": "2025-01-01T00:00:00+00:00",
    }) + "\n", encoding="utf-8")

    module = _load_debug_module()
    argv = ["debug_recommendations.py", "alice", "--catalog", str(catalog), "--interactions", str(interactions)]
    with patch.object(sys, "argv", argv):
        assert module.main() == 0

    out = capsys.readouterr().out
    assert "Profile for alice" in out
    assert "evt-1" in out
    assert "Stats:" in out


def test_debug_cli_missing_catalog(tmp_path, capsys):
    module = _load_debug_module()
    argv = ["debug_recommendations.py", "alice", "--catalog", str(tmp_path / "missing.json")]
    with patch.object(sys, "argv", argv):
        assert module.main() == 1

    assert "Catalog file not found" in capsys.readouterr().err
