"""
Console output helpers for the Tabichan CLI.
"""

import json
from typing import Any


def parse_preferences(items: list[str] | None) -> dict[str, Any]:
    """Turn repeated ``key=value`` arguments into a preferences dict.

    A key given more than once collects its values into a list.
    """
    preferences: dict[str, Any] = {}
    for item in items or []:
        if '=' not in item:
            raise ValueError(f"Invalid preference '{item}'. Expected format key=value (e.g. budget=medium)")
        key, value = item.split('=', 1)
        key = key.strip()
        value = value.strip()
        if not key:
            raise ValueError(f"Invalid preference '{item}': empty key")
        if key in preferences:
            existing = preferences[key]
            preferences[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            preferences[key] = value
    return preferences


def print_result(result: Any):
    """Print a generation result as indented JSON."""
    print("\n" + "=" * 60)
    print("RESULT")
    print("=" * 60)
    if isinstance(result, (dict, list)):
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print(result)


def print_question(data: dict):
    """Print a clarifying question from the server."""
    print("\n" + "-" * 60)
    print(f"❓ {data.get('question', '')}")
    print("-" * 60)


def print_poll(data: dict):
    """Print one poll payload."""
    print(f"  Status: {data.get('status', '?')}")
    if data.get("error"):
        print(f"  Error:  {data['error']}")
    if data.get("result") is not None:
        print_result(data["result"])
