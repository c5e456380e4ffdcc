# ==============================
# Chain Orchestrator
# ==============================
"""
Run an ordered list of ChainSteps against a Tools collection.

Per step, strictly in order:
1. condition (if any): references resolved, expression evaluated; false -> skipped.
2. tool lookup; a missing tool fails the step.
3. {{stepJ...}} references in parameters resolved against recorded results.
4. tool.execute(params); the result or the error message is recorded.

Rules:
- Best effort: a failed step never aborts the chain; later steps that reference
  it fail on their own unresolved references.
- ChainResult.success is the AND of every non-skipped step.
- account_id travels as a per-call x-account-id header; Tools are never mutated.
- No parallelism, no timeout, no retries.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from toolkit.contracts.chain_schema import ChainResult, ChainStep, StepResult
from toolkit.contracts.trace_schema import TraceEvent, TraceLevel
from toolkit.logging.logger import LogContext, with_context
from toolkit.logging.tracing import Tracer
from toolkit.orchestrator.conditions import evaluate_condition
from toolkit.orchestrator.templating import render_params
from toolkit.tools.base import ACCOUNT_ID_HEADER
from toolkit.utils.errors import ToolkitError

if TYPE_CHECKING:
    from toolkit.tools.collection import Tools

StepInput = Union[ChainStep, Mapping[str, Any]]


def _elapsed_ms(started: float) -> int:
    return int((time.time() - started) * 1000)


def coerce_steps(steps: Optional[Iterable[StepInput]]) -> List[ChainStep]:
    out: List[ChainStep] = []
    for i, step in enumerate(steps or []):
        if isinstance(step, ChainStep):
            out.append(step)
            continue
        try:
            out.append(ChainStep.model_validate(dict(step)))
        except (ValidationError, TypeError, ValueError) as exc:
            raise ToolkitError(f"Invalid chain step {i}: {exc}") from exc
    if not out:
        raise ToolkitError("Steps array is required and must not be empty")
    return out


class ChainOrchestrator:
    def __init__(
        self,
        tools: "Tools",
        *,
        logger: Optional[logging.Logger] = None,
        tracer: Optional[Tracer] = None,
    ) -> None:
        self.tools = tools
        self.logger = logger or logging.getLogger(__name__)
        self.tracer = tracer

    # ==============================
    # Public API
    # ==============================
    def run(
        self,
        steps: Iterable[StepInput],
        *,
        account_id: Optional[str] = None,
        dry_run: bool = False,
    ) -> ChainResult:
        chain_steps = coerce_steps(steps)
        chain_id = uuid.uuid4().hex
        started = time.time()
        headers = {ACCOUNT_ID_HEADER: account_id} if account_id else {}

        results: List[StepResult] = []
        for index, step in enumerate(chain_steps):
            record = self._run_step(index, step, results, headers=headers, dry_run=dry_run, chain_id=chain_id)
            results.append(record)

        success = all(r.success or r.skipped for r in results)
        self.logger.info(
            "chain finished: success=%s steps=%d",
            success,
            len(results),
            extra={"chain_id": chain_id, "account_id": account_id},
        )
        return ChainResult(success=success, step_results=results, execution_time_ms=_elapsed_ms(started))

    # ==============================
    # Step
    # ==============================
    def _run_step(
        self,
        index: int,
        step: ChainStep,
        results: List[StepResult],
        *,
        headers: Dict[str, str],
        dry_run: bool,
        chain_id: str,
    ) -> StepResult:
        log = with_context(self.logger, LogContext(tool=step.tool_name, step=step.display_name, chain_id=chain_id))
        started = time.time()
        base = {"step_index": index, "step_name": step.display_name, "tool_name": step.tool_name}

        try:
            if step.condition and not evaluate_condition(step.condition, results):
                log.info("step skipped: condition false")
                record = StepResult(**base, success=True, skipped=True, execution_time_ms=_elapsed_ms(started))
                self._trace(record, chain_id)
                return record

            tool = self.tools.require(step.tool_name)
            params = render_params(step.parameters, results)
            result = tool.execute(params, dry_run=dry_run, headers=headers)
        except Exception as exc:
            # every failure becomes data on the step; the chain carries on
            log.warning("step failed: %s", exc)
            record = StepResult(**base, success=False, error=str(exc) or type(exc).__name__, execution_time_ms=_elapsed_ms(started))
            self._trace(record, chain_id)
            return record

        record = StepResult(**base, success=True, result=result, execution_time_ms=_elapsed_ms(started))
        self._trace(record, chain_id)
        return record

    def _trace(self, record: StepResult, chain_id: str) -> None:
        if self.tracer is None:
            return
        self.tracer.emit(
            TraceEvent(
                event_type="chain.step",
                tool=record.tool_name,
                chain_id=chain_id,
                level=TraceLevel.INFO if record.success else TraceLevel.WARNING,
                payload={
                    "step_index": record.step_index,
                    "success": record.success,
                    "skipped": record.skipped,
                    "error": record.error,
                    "execution_time_ms": record.execution_time_ms,
                },
            )
        )
