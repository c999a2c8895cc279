"""Tests for descriptors, probe results and run state."""

import json

import pytest
from pydantic import ValidationError

from model_prober.models import (
    ModelDescriptor,
    ModelListing,
    ProbeResult,
    ProbeRun,
    ProbeState,
    RunOutcome,
    run_outcome,
)


class TestModelDescriptor:
    """Tests for ModelDescriptor parsing."""

    def test_owned_by_maps_to_owner(self) -> None:
        descriptor = ModelDescriptor.model_validate(
            {"id": "gpt-4o", "object": "model", "created": 1715367049, "owned_by": "system"}
        )
        assert descriptor.id == "gpt-4o"
        assert descriptor.owner == "system"
        assert descriptor.object == "model"
        assert descriptor.created == 1715367049

    def test_owner_accepted_directly(self) -> None:
        assert ModelDescriptor(id="gpt-4", owner="openai").owner == "openai"

    def test_owner_defaults_to_empty(self) -> None:
        assert ModelDescriptor(id="custom").owner == ""

    def test_null_owner_becomes_empty(self) -> None:
        descriptor = ModelDescriptor.model_validate({"id": "gpt-4o", "owned_by": None})
        assert descriptor.owner == ""


class TestModelListing:
    def test_ok_without_error(self) -> None:
        assert ModelListing(models=[ModelDescriptor(id="a")]).ok

    def test_not_ok_with_error(self) -> None:
        listing = ModelListing(error="HTTP 401")
        assert not listing.ok
        assert listing.models == []


class TestProbeResult:
    """Tests for the ProbeResult lifecycle."""

    def test_testing_snapshot(self) -> None:
        result = ProbeResult.testing(3, "gpt-4o")
        assert result.index == 3
        assert result.state == ProbeState.TESTING
        assert not result.is_terminal
        assert result.elapsed_ms is None

    def test_succeeded_returns_new_terminal_snapshot(self) -> None:
        pending = ProbeResult.testing(0, "gpt-4o")

        done = pending.succeeded("Hi there!", 120)

        assert done.state == ProbeState.SUCCESS
        assert done.response_text == "Hi there!"
        assert done.elapsed_ms == 120
        assert done.is_terminal
        assert pending.state == ProbeState.TESTING

    def test_failed_returns_new_terminal_snapshot(self) -> None:
        done = ProbeResult.testing(0, "gpt-4o").failed("invalid_api_key", 40)

        assert done.state == ProbeState.ERROR
        assert done.error_message == "invalid_api_key"
        assert done.response_text is None

    def test_snapshots_are_frozen(self) -> None:
        result = ProbeResult.testing(0, "gpt-4o")
        with pytest.raises(ValidationError):
            result.state = ProbeState.SUCCESS

    def test_to_sse_omits_empty_fields(self) -> None:
        event = ProbeResult.testing(1, "gpt-4").to_sse()

        assert event.startswith("data: ")
        assert event.endswith("\n\n")
        payload = json.loads(event[len("data: ") :])
        assert payload == {"index": 1, "model_id": "gpt-4", "state": "testing"}

    def test_owner_carried_to_terminal_snapshot(self) -> None:
        done = ProbeResult.testing(0, "gpt-4o", "system").succeeded("hi", 3)
        assert done.owner == "system"

    def test_empty_owner_is_unset(self) -> None:
        assert ProbeResult.testing(0, "custom", "").owner is None


class TestRunOutcome:
    def test_any_success_is_success(self) -> None:
        results = [
            ProbeResult.testing(0, "a").failed("x", 1),
            ProbeResult.testing(1, "b").succeeded("hi", 1),
        ]
        assert run_outcome(results) == RunOutcome.SUCCESS

    def test_all_errors_is_failure(self) -> None:
        results = [ProbeResult.testing(i, m).failed("x", 1) for i, m in enumerate("abc")]
        assert run_outcome(results) == RunOutcome.FAILURE

    def test_empty_is_failure(self) -> None:
        assert run_outcome([]) == RunOutcome.FAILURE


class TestProbeRun:
    """Tests for applying snapshots in place."""

    def test_apply_appends_then_replaces(self) -> None:
        run = ProbeRun(models=["a", "b"])
        pending = ProbeResult.testing(0, "a")

        run.apply(pending)
        assert run.results == [pending]

        done = pending.succeeded("hi", 5)
        run.apply(done)
        assert run.results == [done]
        assert not run.is_complete
        assert run.outcome is None

    def test_outcome_available_when_complete(self) -> None:
        run = ProbeRun(models=["a", "b"])
        for index, model in enumerate(run.models):
            pending = ProbeResult.testing(index, model)
            run.apply(pending)
            run.apply(pending.failed("denied", 3))

        assert run.is_complete
        assert run.error_count == 2
        assert run.success_count == 0
        assert run.outcome == RunOutcome.FAILURE

    def test_terminal_result_is_never_replaced(self) -> None:
        run = ProbeRun(models=["a"])
        pending = ProbeResult.testing(0, "a")
        run.apply(pending)
        run.apply(pending.succeeded("hi", 1))

        with pytest.raises(ValueError):
            run.apply(pending.failed("late", 2))

    def test_out_of_order_index_rejected(self) -> None:
        run = ProbeRun(models=["a", "b"])
        with pytest.raises(ValueError):
            run.apply(ProbeResult.testing(1, "b"))

    def test_summary_and_json(self) -> None:
        run = ProbeRun(models=["a"])
        pending = ProbeResult.testing(0, "a")
        run.apply(pending)
        run.apply(pending.succeeded("hi", 9))

        assert run.summary() == {"outcome": "success", "succeeded": 1, "failed": 0, "total": 1}
        payload = json.loads(run.to_json())
        assert payload["results"][0]["response_text"] == "hi"
