"""JSON output helpers shared by CLI commands."""

import json
from datetime import date, datetime
from typing import Any


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return f"<{len(value)} bytes>"
    return str(value)


def print_json(data: Any) -> None:
    """Print data as indented JSON, keeping non-ASCII text readable."""
    print(json.dumps(data, indent=2, ensure_ascii=False, default=_json_default))
