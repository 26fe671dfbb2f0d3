"""
Review settings schema.

Frozen dataclasses the YAML settings file is parsed into.  Field defaults
here are the values used when a key is absent from the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from review_kernel.domain.dtos import BatchResponseScope

MIN_TOKEN_BYTES = 16


@dataclass(frozen=True)
class ReviewOptions:
    """Customer review read path."""

    billable_status: str = "Billable"


@dataclass(frozen=True)
class ClarificationOptions:
    token_ttl_days: int = 7
    batch_response_scope: BatchResponseScope = BatchResponseScope.SUBJECT


@dataclass(frozen=True)
class TokenOptions:
    # Passed to secrets.token_urlsafe
    token_bytes: int = 32


@dataclass(frozen=True)
class DashboardOptions:
    cleared_window_days: int = 7


@dataclass(frozen=True)
class ReviewSettings:
    """Validated runtime settings.  Obtain through ``get_active_config()``."""

    review: ReviewOptions = field(default_factory=ReviewOptions)
    clarification: ClarificationOptions = field(default_factory=ClarificationOptions)
    tokens: TokenOptions = field(default_factory=TokenOptions)
    dashboard: DashboardOptions = field(default_factory=DashboardOptions)
    checksum: str = ""
