# ==============================
# Trace Contracts
# ==============================
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class TraceLevel(str, Enum):
    """Severity level for trace events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class TraceEvent(BaseModel):
    """A single trace event emitted by the executor or the chain orchestrator."""
    model_config = ConfigDict(extra="forbid")

    event_id: str = Field(default_factory=lambda: str(uuid4()), description="Unique event id.")
    event_type: str = Field(..., description="Machine-readable event type (e.g., tool.executed, chain.step).")
    tool: Optional[str] = Field(default=None, description="Tool name if applicable.")
    chain_id: Optional[str] = Field(default=None, description="Chain run id if applicable.")
    ts: datetime = Field(default_factory=datetime.utcnow, description="Event timestamp (UTC).")
    level: TraceLevel = Field(default=TraceLevel.INFO)
    payload: Dict[str, Any] = Field(default_factory=dict, description="Structured payload (sanitized).")
    redacted: bool = Field(default=False, description="Whether payload was redacted.")
