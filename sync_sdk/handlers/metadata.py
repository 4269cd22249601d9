"""Builders for the field declarations of external domain metadata."""

from typing import Any, Dict


def field(type: str, name: str, **extra: Any) -> Dict[str, Any]:
    return {"type": type, "name": name, **extra}


def reference(record_type: str, name: str, **extra: Any) -> Dict[str, Any]:
    return field(
        "reference",
        name,
        reference={"refers_to": {f"#record:{record_type}": {}}},
        **extra,
    )


def enum(name: str, values: Dict[str, str], **extra: Any) -> Dict[str, Any]:
    return field(
        "enum",
        name,
        enum={"values": [{"key": k, "name": v} for k, v in values.items()]},
        **extra,
    )
