"""Output formatting utilities for CLI."""

import json
from typing import Any, Dict, List

import yaml
from tabulate import tabulate


def format_output(data: Any, format_type: str) -> str:
    """Format data for output.

    Args:
        data: Data to format
        format_type: Output format ('json', 'yaml', 'table')

    Returns:
        Formatted string
    """
    if format_type == "json":
        return json.dumps(data, indent=2, default=str)
    elif format_type == "yaml":
        return yaml.safe_dump(_plain(data), default_flow_style=False, indent=2, sort_keys=False)
    elif format_type == "table":
        if isinstance(data, dict):
            return format_dict_as_table(data)
        elif isinstance(data, list):
            return format_list_as_table(data)
        else:
            return str(data)
    else:
        raise ValueError(f"Unsupported format: {format_type}")


def format_dict_as_table(data: Dict[str, Any], max_depth: int = 2) -> str:
    """Format dictionary as a two column key/value table."""
    rows = []

    def flatten_dict(d: Dict[str, Any], prefix: str = "", depth: int = 0):
        for key, value in d.items():
            full_key = f"{prefix}.{key}" if prefix else key

            if isinstance(value, dict) and depth < max_depth:
                flatten_dict(value, full_key, depth + 1)
            elif isinstance(value, list) and len(value) <= 5:
                rows.append([full_key, ", ".join(map(str, value))])
            else:
                str_value = str(value)
                if len(str_value) > 60:
                    str_value = str_value[:57] + "..."
                rows.append([full_key, str_value])

    flatten_dict(data)

    if not rows:
        return "No data to display"
    return tabulate(rows, headers=["Key", "Value"], tablefmt="grid")


def format_list_as_table(data: List[Dict[str, Any]]) -> str:
    """Format list of dictionaries as table, columns in first-seen order."""
    headers: List[str] = []
    for item in data:
        if isinstance(item, dict):
            headers.extend(key for key in item if key not in headers)

    if not headers:
        return "No data to display"

    rows = [
        [str(item.get(header, "")) for header in headers]
        for item in data
        if isinstance(item, dict)
    ]
    return tabulate(rows, headers=headers, tablefmt="grid")


def _plain(data: Any) -> Any:
    """Convert to JSON-compatible primitives so YAML output stays tag free."""
    return json.loads(json.dumps(data, default=str))
