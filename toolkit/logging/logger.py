# ==============================
# Logging Bootstrap
# ==============================
"""
Logging bootstrap.

Goals:
- Centralize logger configuration using Settings.logging.
- Provide structured context fields (tool, step, account_id, chain_id).
- stdlib logging + JSON line formatter.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

from toolkit.config.schema import Settings

_CONTEXT_FIELDS = ("tool", "step", "account_id", "chain_id")


@dataclass(frozen=True)
class LogContext:
    tool: Optional[str] = None
    step: Optional[str] = None
    account_id: Optional[str] = None
    chain_id: Optional[str] = None


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # Optional structured extras
        for k in _CONTEXT_FIELDS:
            value = getattr(record, k, None)
            if value is not None:
                payload[k] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def bootstrap_logger(settings: Settings) -> logging.Logger:
    """
    Configure root logger based on settings.
    Returns a named logger ("toolkit").
    """
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    # clear existing handlers to avoid duplicates in reload
    root.handlers = []

    if settings.logging.console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(JsonLineFormatter())
        root.addHandler(handler)

    return logging.getLogger("toolkit")


def with_context(logger: logging.Logger, ctx: LogContext) -> logging.LoggerAdapter:
    return logging.LoggerAdapter(
        logger,
        {
            "tool": ctx.tool,
            "step": ctx.step,
            "account_id": ctx.account_id,
            "chain_id": ctx.chain_id,
        },
    )
