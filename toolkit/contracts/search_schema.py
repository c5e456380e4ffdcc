# ==============================
# Search Contracts
# ==============================
"""
Models for tool discovery.

ToolDocument is what the index stores per tool; SearchHit is what a query returns.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ToolDocument(BaseModel):
    """Indexed view of a tool."""
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    category: str = Field(default="", description="First underscore-delimited segment of the name.")
    tags: List[str] = Field(default_factory=list, description="Name segments plus recognised action verbs.")


class SearchQuery(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    query: str = Field(..., description="Free-text description of the needed tool.")
    limit: Optional[int] = Field(default=None, ge=1)
    min_score: Optional[float] = Field(default=None, alias="minScore", ge=0.0, le=1.0)
    filter_patterns: Optional[Union[str, List[str]]] = Field(default=None, alias="filterPatterns")


class SearchHit(BaseModel):
    """One ranked tool, resolved back to its full schema."""
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str
    parameters: Dict[str, Any]
    score: float = Field(..., ge=0.0, le=1.0)
