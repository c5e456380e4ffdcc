# ==============================
# Tracing Pipeline
# ==============================
"""
Tracing pipeline.

Responsibilities:
- Accept TraceEvent (contract)
- Scrub payload via SecurityRedactor
- Mirror to logs and hand to an optional sink (tests, gateway)

No persistence: the engine is stateless across process restarts.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from toolkit.contracts.trace_schema import TraceEvent
from toolkit.governance.security import SecurityRedactor

TraceSink = Callable[[TraceEvent], None]


class Tracer:
    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        redactor: Optional[SecurityRedactor] = None,
        sink: Optional[TraceSink] = None,
        mirror_to_log: bool = True,
    ) -> None:
        self.logger = logger or logging.getLogger("toolkit.trace")
        self.redactor = redactor or SecurityRedactor()
        self.sink = sink
        self.mirror_to_log = mirror_to_log

    def emit(self, event: TraceEvent) -> TraceEvent:
        sanitized = self.redactor.redact_dict(event.payload)
        safe = event.model_copy(update={"payload": sanitized, "redacted": sanitized != event.payload})
        if self.sink is not None:
            self.sink(safe)
        if self.mirror_to_log:
            self.logger.debug(
                safe.event_type,
                extra={"tool": safe.tool, "chain_id": safe.chain_id},
            )
        return safe


class CollectingTracer(Tracer):
    """Tracer that keeps every sanitized event in memory."""

    def __init__(self, **kwargs) -> None:
        self.events: List[TraceEvent] = []
        super().__init__(sink=self.events.append, **kwargs)
