"""Stable serialization used for duplicate detection."""

from __future__ import annotations

import json
from typing import Any


def canonical_json(value: Any) -> str:
    """Serialize ``value`` with sorted keys so key order never affects equality."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
