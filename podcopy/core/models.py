"""Canonical domain models for a copy collection run.

- `CollectionRequest` is caller-supplied and frozen for the run.
- `Node` is discovered fresh on each run.
- `FetchOutcome` is one node's result; the aggregator folds it into a `ResultBundle`.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BaseModelStrict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class BaseModelFrozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class CollectionRequest(BaseModelFrozen):
    namespace: str
    selectors: List[str] = Field(default_factory=list)
    container_path: str
    # Defaults per-node to the first declared container when unset/empty.
    container_name: Optional[str] = None
    collector_name: Optional[str] = None

    @field_validator("container_path")
    @classmethod
    def _require_path(cls, v: str) -> str:
        if not v:
            raise ValueError("container_path must be non-empty")
        return v


class Node(BaseModelFrozen):
    namespace: str
    name: str
    containers: List[str] = Field(default_factory=list)

    @property
    def identity(self) -> str:
        return f"{self.namespace}/{self.name}"


class FetchSuccess(BaseModelFrozen):
    data: bytes

    @property
    def ok(self) -> bool:
        return True


class FetchFailure(BaseModelFrozen):
    message: str
    # Partial output captured before the error; None when nothing was captured.
    stdout: Optional[bytes] = None
    stderr: Optional[bytes] = None

    @property
    def ok(self) -> bool:
        return False


FetchOutcome = Union[FetchSuccess, FetchFailure]


class ResultBundle(BaseModelStrict):
    files: Dict[str, bytes] = Field(default_factory=dict)
    errors: Dict[str, bytes] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.files and not self.errors


__all__ = [
    "CollectionRequest",
    "FetchFailure",
    "FetchOutcome",
    "FetchSuccess",
    "Node",
    "ResultBundle",
]
