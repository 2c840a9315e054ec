"""Tests for the projection testing helpers."""

import pytest

from event_projections.domain import Event
from event_projections.testing import ProjectionScenario, StubQuery
from event_projections.testing.core import (
    ContainsErrorOfExactType,
    ContainsValue,
    DoesNotEmit,
    EmitsValuesInOrder,
    Result,
)

DEPOSIT = Event("Money deposited", {"account": 1})


class TestStubQuery:
    """Tests for StubQuery."""

    @pytest.mark.asyncio
    async def test_returns_canned_results(self):
        query = StubQuery(initial="initial", on_event="updated")

        assert await query.execute() == "initial"
        assert await query.execute_on(DEPOSIT) == "updated"
        assert query.executions == 1
        assert query.received_events == [DEPOSIT]

    @pytest.mark.asyncio
    async def test_responder_takes_precedence(self):
        query = StubQuery(on_event="ignored", responder=lambda event: event.get_id_of("account"))

        assert await query.execute_on(DEPOSIT) == 1

    @pytest.mark.asyncio
    async def test_raises_configured_errors(self):
        query = StubQuery(initial_error=KeyError("a"), event_error=IndexError("b"))

        with pytest.raises(KeyError):
            await query.execute()
        with pytest.raises(IndexError):
            await query.execute_on(DEPOSIT)


class TestExpectations:
    """Tests for Result and expectations."""

    def test_emits_values_in_order(self):
        result = Result(values=[1, 2], errors=[])

        assert EmitsValuesInOrder([1, 2]).was_met(result)
        assert not EmitsValuesInOrder([2, 1]).was_met(result)

    def test_contains_value(self):
        result = Result(values=[1, 2], errors=[])

        assert ContainsValue(2).was_met(result)
        assert not ContainsValue(3).was_met(result)

    def test_contains_error_of_exact_type(self):
        result = Result(values=[], errors=[ValueError("x")])

        assert ContainsErrorOfExactType(ValueError).was_met(result)
        assert not ContainsErrorOfExactType(KeyError).was_met(result)

    def test_does_not_emit(self):
        assert DoesNotEmit().was_met(Result(values=[], errors=[]))
        assert not DoesNotEmit().was_met(Result(values=[], errors=[ValueError("x")]))

    def test_assert_met_describes_failure(self):
        with pytest.raises(AssertionError, match="should emit exactly"):
            EmitsValuesInOrder([1]).assert_met(Result(values=[], errors=[]))


class TestProjectionScenario:
    """Tests for ProjectionScenario."""

    @pytest.mark.asyncio
    async def test_records_initial_and_event_results(self):
        query = StubQuery(initial=0, on_event=100)

        async with ProjectionScenario(query, "Money deposited") as scenario:
            scenario.given(DEPOSIT, Event("Money withdrawn", {})).should_emit(0, 100)

    @pytest.mark.asyncio
    async def test_records_errors(self):
        query = StubQuery(event_error=LookupError("no account"))

        async with ProjectionScenario(query, "Money deposited") as scenario:
            scenario.given(DEPOSIT).should_raise(LookupError)

    @pytest.mark.asyncio
    async def test_nothing_emitted_without_results(self):
        async with ProjectionScenario(StubQuery(), "Money deposited") as scenario:
            scenario.given_no_events().should_not_emit()

    @pytest.mark.asyncio
    async def test_fails_when_expectation_is_not_met(self):
        with pytest.raises(AssertionError, match="Expectation not met"):
            async with ProjectionScenario(StubQuery(initial=0), "Money deposited") as scenario:
                scenario.given(DEPOSIT).should_emit_value(100)
