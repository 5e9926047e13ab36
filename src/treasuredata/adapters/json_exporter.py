"""JSON export of command results.

Why JSON:
- Interoperability with jq, notebooks and other pipelines.
- Persists API responses exactly as decoded, independent of the table view.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def dumps_json(payload: Any) -> str:
    """Stable, human readable JSON (UTF-8, sorted keys, two-space indent)."""

    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)


def export_json(payload: Any, output_path: Path) -> Path:
    """Write an already JSON-ready `payload` to `output_path`."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(dumps_json(payload) + "\n", encoding="utf-8")
    return output_path
