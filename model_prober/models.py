"""Model descriptors, probe results and run state.

ProbeResult snapshots are yielded while a run progresses: a ``testing``
snapshot when a model's turn starts, then one terminal snapshot with the
same index that replaces it. ProbeRun applies those snapshots in place.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ProbeState(StrEnum):
    """Lifecycle state of a single model probe."""

    TESTING = "testing"
    SUCCESS = "success"
    ERROR = "error"


class RunOutcome(StrEnum):
    """Overall outcome of a completed run."""

    SUCCESS = "success"
    FAILURE = "failure"


class ModelDescriptor(BaseModel):
    """One queryable model, as reported by ``GET /v1/models``."""

    id: str
    owner: str = Field(default="", validation_alias=AliasChoices("owner", "owned_by"))
    object: str | None = None
    created: int | None = None

    @field_validator("owner", mode="before")
    @classmethod
    def _null_owner(cls, value: Any) -> Any:
        return "" if value is None else value


class ModelListing(BaseModel):
    """Result of a model list lookup.

    ``error`` carries the surfaced message when the lookup failed; the
    model list is empty in that case.
    """

    models: list[ModelDescriptor] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProbeResult(BaseModel):
    """Snapshot of one model's probe."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    index: int
    model_id: str
    owner: str | None = None
    state: ProbeState = ProbeState.TESTING
    response_text: str | None = None
    error_message: str | None = None
    elapsed_ms: int | None = None

    @classmethod
    def testing(cls, index: int, model_id: str, owner: str | None = None) -> ProbeResult:
        return cls(index=index, model_id=model_id, owner=owner or None)

    @property
    def is_terminal(self) -> bool:
        return self.state != ProbeState.TESTING

    def succeeded(self, response_text: str, elapsed_ms: int) -> ProbeResult:
        """Return the terminal success snapshot for this probe."""
        return self.model_copy(
            update={
                "state": ProbeState.SUCCESS,
                "response_text": response_text,
                "elapsed_ms": elapsed_ms,
            }
        )

    def failed(self, error_message: str, elapsed_ms: int | None) -> ProbeResult:
        """Return the terminal error snapshot for this probe."""
        return self.model_copy(
            update={
                "state": ProbeState.ERROR,
                "error_message": error_message,
                "elapsed_ms": elapsed_ms,
            }
        )

    def to_sse(self) -> str:
        """Serialize to SSE event data."""
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"


def run_outcome(results: Iterable[ProbeResult]) -> RunOutcome:
    """Success if at least one probe succeeded, failure otherwise."""
    if any(r.state == ProbeState.SUCCESS for r in results):
        return RunOutcome.SUCCESS
    return RunOutcome.FAILURE


class ProbeRun(BaseModel):
    """Ordered probe results owned by a single run.

    Snapshots are applied in place: a new index appends, a known index
    replaces the existing ``testing`` snapshot. Terminal snapshots are
    never replaced.
    """

    models: list[str]
    results: list[ProbeResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.models)

    def apply(self, result: ProbeResult) -> None:
        """Record a snapshot yielded by the prober."""
        if result.index == len(self.results):
            self.results.append(result)
            return
        if not 0 <= result.index < len(self.results):
            raise ValueError(f"Snapshot index {result.index} is out of order")
        if self.results[result.index].is_terminal:
            raise ValueError(f"Result for {result.model_id} is already final")
        self.results[result.index] = result

    @property
    def is_complete(self) -> bool:
        return len(self.results) == self.total and all(r.is_terminal for r in self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.state == ProbeState.SUCCESS)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if r.state == ProbeState.ERROR)

    @property
    def outcome(self) -> RunOutcome | None:
        """Derived outcome, available once every model has a terminal result."""
        if not self.is_complete:
            return None
        return run_outcome(self.results)

    def summary(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value if self.outcome else None,
            "succeeded": self.success_count,
            "failed": self.error_count,
            "total": self.total,
        }

    def to_json(self) -> str:
        return json.dumps(
            {
                **self.summary(),
                "results": [r.model_dump(mode="json", exclude_none=True) for r in self.results],
            },
            indent=2,
        )
