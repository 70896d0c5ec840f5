"""
Stage and accumulator models for pipeline runs.
"""

import json
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class StageStatus(str, Enum):
    """Lifecycle of a single stage."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"


class Stage(BaseModel):
    """Progress record for one named stage of a run."""

    name: str = Field(..., description="Stage name")
    status: StageStatus = Field(default=StageStatus.PENDING, description="Current status")
    message: str = Field(default="Waiting to start...", description="Human-readable message")
    percentage: int = Field(default=0, ge=0, le=100, description="Completion percentage")


class PartialResult(BaseModel):
    """
    Accumulator built up stage by stage.

    Each completed stage merges JSON-compatible fields. The accumulator only
    becomes a result once every stage has contributed; a failed run throws
    it away.
    """

    fields: Dict[str, Any] = Field(default_factory=dict)
    completed_stages: List[str] = Field(default_factory=list)

    def merge(self, stage: str, values: Dict[str, Any]) -> None:
        self.fields.update(values)
        self.completed_stages.append(stage)

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def __contains__(self, key: str) -> bool:
        return key in self.fields

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), sort_keys=True)

    @classmethod
    def from_json(cls, payload: str) -> 'PartialResult':
        return cls.model_validate(json.loads(payload))
