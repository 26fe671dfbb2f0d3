"""
Settings loader (``review_config.loader``).

Responsibility
--------------
Reads the YAML settings file and parses it into the frozen dataclasses of
``review_config.schema``.  Internal tooling: runtime callers go through
``review_config.get_active_config()``.

Invariants enforced
-------------------
* Every parse error raises ``ValueError`` naming the offending key; there
  are no silent fallbacks for present-but-invalid values.
* Unknown top-level sections are rejected, so a typo never silently falls
  back to a default.
* ``compute_checksum`` is deterministic for equal parsed content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from review_config.schema import (
    MIN_TOKEN_BYTES,
    BatchResponseScope,
    ClarificationOptions,
    DashboardOptions,
    ReviewOptions,
    ReviewSettings,
    TokenOptions,
)

_SECTIONS = frozenset({"review", "clarification", "tokens", "dashboard"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: settings document must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{name}: expected a mapping, got {type(value).__name__}")
    return value


def _positive_int(section: dict[str, Any], key: str, default: int, where: str) -> int:
    value = section.get(key, default)
    # bool is an int subclass; "true" is never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{where}.{key}: expected an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"{where}.{key}: must be positive, got {value}")
    return value


def parse_review(data: dict[str, Any]) -> ReviewOptions:
    status = data.get("billable_status", ReviewOptions.billable_status)
    if not isinstance(status, str) or not status.strip():
        raise ValueError(f"review.billable_status: expected a non-empty string, got {status!r}")
    return ReviewOptions(billable_status=status)


def parse_clarification(data: dict[str, Any]) -> ClarificationOptions:
    raw_scope = data.get("batch_response_scope", BatchResponseScope.SUBJECT.value)
    try:
        scope = BatchResponseScope(raw_scope)
    except ValueError:
        allowed = ", ".join(s.value for s in BatchResponseScope)
        raise ValueError(
            f"clarification.batch_response_scope: {raw_scope!r} is not one of {allowed}"
        ) from None
    return ClarificationOptions(
        token_ttl_days=_positive_int(
            data, "token_ttl_days", ClarificationOptions.token_ttl_days, "clarification",
        ),
        batch_response_scope=scope,
    )


def parse_tokens(data: dict[str, Any]) -> TokenOptions:
    token_bytes = _positive_int(data, "token_bytes", TokenOptions.token_bytes, "tokens")
    if token_bytes < MIN_TOKEN_BYTES:
        raise ValueError(
            f"tokens.token_bytes: must be at least {MIN_TOKEN_BYTES}, got {token_bytes}"
        )
    return TokenOptions(token_bytes=token_bytes)


def parse_dashboard(data: dict[str, Any]) -> DashboardOptions:
    return DashboardOptions(
        cleared_window_days=_positive_int(
            data, "cleared_window_days", DashboardOptions.cleared_window_days, "dashboard",
        ),
    )


def parse_settings(data: dict[str, Any]) -> ReviewSettings:
    """
    Parse a settings mapping into ``ReviewSettings``.

    Raises:
        ValueError: on unknown sections or invalid values.
    """
    unknown = set(data) - _SECTIONS
    if unknown:
        raise ValueError(f"Unknown settings section(s): {', '.join(sorted(unknown))}")

    return ReviewSettings(
        review=parse_review(_section(data, "review")),
        clarification=parse_clarification(_section(data, "clarification")),
        tokens=parse_tokens(_section(data, "tokens")),
        dashboard=parse_dashboard(_section(data, "dashboard")),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> ReviewSettings:
    """Load and parse the settings file at ``path``."""
    return parse_settings(load_yaml_file(path))
