# ==============================
# Chain Contracts
# ==============================
"""
Models for multi-step tool chains.

A chain is an ordered list of ChainStep. Each step may reference results of
earlier steps with {{stepN.result.<path>}} templates and may declare a condition.
The orchestrator records one StepResult per step, in order, and a ChainResult.

Wire keys used by agents (toolName, stepName) are accepted as aliases.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ==============================
# Input
# ==============================
class ChainStep(BaseModel):
    """One tool invocation inside a chain."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    tool_name: str = Field(..., alias="toolName", description="Name of the tool to execute.")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Arguments; may contain {{stepN...}} references.")
    step_name: Optional[str] = Field(default=None, alias="stepName", description="Display name; defaults to tool_name.")
    condition: Optional[str] = Field(default=None, description="Boolean expression; step is skipped when false.")

    @property
    def display_name(self) -> str:
        return self.step_name or self.tool_name


# ==============================
# Output
# ==============================
class StepResult(BaseModel):
    """Outcome of one step. Errors are data, not control flow."""
    model_config = ConfigDict(extra="forbid")

    step_index: int = Field(..., description="0-based, stable position in the chain.")
    step_name: str
    tool_name: str
    success: bool
    skipped: bool = Field(default=False)
    result: Optional[Any] = Field(default=None)
    error: Optional[str] = Field(default=None)
    execution_time_ms: int = Field(default=0)

    @model_validator(mode="after")
    def _enforce_error_contract(self) -> "StepResult":
        if self.success and self.error is not None:
            raise ValueError("Step error must be None when success=True")
        if not self.success and self.error is None:
            raise ValueError("Step error is required when success=False")
        return self


class ChainResult(BaseModel):
    """Aggregate outcome: success is the AND of all non-skipped steps."""
    model_config = ConfigDict(extra="forbid")

    success: bool
    step_results: List[StepResult] = Field(default_factory=list)
    execution_time_ms: int = Field(default=0)

    def to_dict(self) -> Dict[str, Any]:
        """Stable serialization wrapper."""
        return self.model_dump(mode="json")
