"""
review_config -- single public entrypoint for workflow settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  No other component reads the settings file
    or environment directly; services receive a ``ReviewSettings``
    instance by injection.

Architecture position:
    Configuration.  Sits beside ``review_kernel``: selectors and services
    accept a ``ReviewSettings`` but never load one themselves.

Failure modes:
    - ``FileNotFoundError`` -- settings file does not exist.
    - ``yaml.YAMLError`` -- settings file is not valid YAML.
    - ``ValueError`` -- schema validation failed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``REVIEW_CONFIG_TRACE`` log entry with the source path and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from review_config.loader import load_settings
from review_config.schema import (
    BatchResponseScope,
    ClarificationOptions,
    DashboardOptions,
    ReviewOptions,
    ReviewSettings,
    TokenOptions,
)

_logger = logging.getLogger("review_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> ReviewSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Settings file to load.  Defaults to the packaged
            ``review_config/defaults.yaml``.

    Returns:
        Frozen ``ReviewSettings``.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If a value fails validation.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    settings = load_settings(path)

    _logger.info(
        "REVIEW_CONFIG_TRACE",
        extra={
            "trace_type": "REVIEW_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": settings.checksum,
            "billable_status": settings.review.billable_status,
            "batch_response_scope": settings.clarification.batch_response_scope.value,
        },
    )
    return settings


__all__ = [
    "BatchResponseScope",
    "ClarificationOptions",
    "DashboardOptions",
    "ReviewOptions",
    "ReviewSettings",
    "TokenOptions",
    "get_active_config",
]
