from typing import Any, Dict

PROJECT_NOT_FOUND: Dict[str, Any] = {"error": "Project not found"}
PROSPECT_NOT_FOUND: Dict[str, Any] = {"error": "Prospect not found"}


def iso(dt):
    return dt.isoformat() if dt else None
