"""Module loggers plus helpers that keep prompts and keys out of log lines."""

from __future__ import annotations

import logging
import re
from typing import Iterable

_REDACTIONS = [
    re.compile(r"Bearer\s+[A-Za-z0-9\-_.]+"),
    re.compile(r"sk-[A-Za-z0-9]+"),
]


def redact(text: str, extra_secrets: Iterable[str] | None = None) -> str:
    """Mask bearer tokens, ``sk-`` keys and any ``extra_secrets`` in ``text``."""
    redacted = text
    for pattern in _REDACTIONS:
        redacted = pattern.sub("Bearer [REDACTED]", redacted)
    if extra_secrets:
        for secret in extra_secrets:
            if secret:
                redacted = redacted.replace(secret, "[REDACTED]")
    return redacted


def clip(text: str, limit: int = 300) -> str:
    """Shorten text for single-line log output."""
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return f"{flat[:limit]}..."


def get_logger(name: str) -> logging.Logger:
    """Return the named logger, attaching one INFO stream handler on first use."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger
