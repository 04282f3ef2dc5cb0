"""Translate dump.table / dump.column messages into Groonga schema commands."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_TABLE_FLAGS: dict[str, str] = {
    "Array": "TABLE_NO_KEY",
    "Hash": "TABLE_HASH_KEY",
    "PatriciaTrie": "TABLE_PAT_KEY",
    "DoubleArrayTrie": "TABLE_DAT_KEY",
}

_COLUMN_FLAGS: dict[str, str] = {
    "Scalar": "COLUMN_SCALAR",
    "Vector": "COLUMN_VECTOR",
    "Index": "COLUMN_INDEX",
}

# Order of the optional index flags in the output, whatever the input order.
_INDEX_OPTION_FLAGS: tuple[tuple[str, str], ...] = (
    ("section", "WITH_SECTION"),
    ("weight", "WITH_WEIGHT"),
    ("position", "WITH_POSITION"),
)


def _options(body: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    options = body.get(key)
    return options if isinstance(options, Mapping) else {}


def table_flags(table_type: Any) -> list[str]:
    """Return the flag tokens for a table type; unknown types get none."""
    flag = _TABLE_FLAGS.get(table_type) if isinstance(table_type, str) else None
    return [flag] if flag else []


def column_flags(body: Mapping[str, Any]) -> list[str]:
    """Return the ordered flag tokens for a column description."""
    column_type = body.get("type")
    base = _COLUMN_FLAGS.get(column_type) if isinstance(column_type, str) else None
    if base is None:
        return []

    flags = [base]
    if column_type == "Vector":
        if _options(body, "vectorOptions").get("weight"):
            flags.append("WITH_WEIGHT")
    elif column_type == "Index":
        index_options = _options(body, "indexOptions")
        flags.extend(
            flag for option, flag in _INDEX_OPTION_FLAGS if index_options.get(option)
        )
    return flags


def table_create_command(message: Mapping[str, Any]) -> dict[str, Any]:
    """Build a ``table_create`` command from a ``dump.table`` message."""
    body = message["body"]
    command_body: dict[str, Any] = {
        "name": body.get("name"),
        "flags": "|".join(table_flags(body.get("type"))),
        "key_type": body.get("keyType"),
    }
    if body.get("tokenizer"):
        command_body["default_tokenizer"] = body["tokenizer"]
    if body.get("normalizer"):
        command_body["normalizer"] = body["normalizer"]

    return {
        "type": "table_create",
        "dataset": message.get("dataset"),
        "body": command_body,
    }


def column_create_command(message: Mapping[str, Any]) -> dict[str, Any]:
    """Build a ``column_create`` command from a ``dump.column`` message."""
    body = message["body"]
    command_body: dict[str, Any] = {
        "table": body.get("table"),
        "name": body.get("name"),
        "type": body.get("valueType"),
        "flags": "|".join(column_flags(body)),
    }

    if body.get("type") == "Index":
        sources = _options(body, "indexOptions").get("sources") or []
        if not isinstance(sources, list | tuple) or not all(
            isinstance(source, str) for source in sources
        ):
            msg = f"Index sources must be a list of column names, got {sources!r}"
            raise ValueError(msg)
        if sources:
            command_body["source"] = ",".join(sources)

    return {
        "type": "column_create",
        "dataset": message.get("dataset"),
        "body": command_body,
    }
