from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from types import TracebackType
from typing import Any, Generic, TypeVar

from typing_extensions import Self

from event_projections.application.events import Stream
from event_projections.domain import Event, Query

T = TypeVar("T")
TResponse = TypeVar("TResponse")


class StubQuery(Query[T, TResponse]):
    """Query returning canned responses and recording how it was called.

    Attributes:
        initial: Result of ``execute``
        on_event: Result of ``execute_on`` unless ``responder`` is set
        responder: Computes the result of ``execute_on`` from the event
        initial_error: Raised by ``execute`` when set
        event_error: Raised by ``execute_on`` when set
        executions: Number of ``execute`` calls
        received_events: Events passed to ``execute_on``, in call order
    """

    def __init__(
        self,
        initial: TResponse | None = None,
        on_event: TResponse | None = None,
        *,
        responder: Callable[[Event[T]], TResponse | None] | None = None,
        initial_error: Exception | None = None,
        event_error: Exception | None = None,
    ):
        self.initial = initial
        self.on_event = on_event
        self.responder = responder
        self.initial_error = initial_error
        self.event_error = event_error
        self.executions = 0
        self.received_events: list[Event[T]] = []

    async def execute(self) -> TResponse | None:
        self.executions += 1
        if self.initial_error is not None:
            raise self.initial_error
        return self.initial

    async def execute_on(self, event: Event[T]) -> TResponse | None:
        self.received_events.append(event)
        if self.event_error is not None:
            raise self.event_error
        if self.responder is not None:
            return self.responder(event)
        return self.on_event


class StreamRecorder(Generic[TResponse]):
    """Listener recording everything a stream delivers.

    Attributes:
        values: Items, in delivery order
        errors: Error notifications, in delivery order
        done: True once the stream completed
    """

    def __init__(self, stream: Stream[TResponse]):
        self.values: list[TResponse] = []
        self.errors: list[Exception] = []
        self.done = False
        self.subscription = stream.listen(
            self.values.append, self.errors.append, self._on_done
        )

    def _on_done(self) -> None:
        self.done = True


class Result(Generic[TResponse]):
    """Everything a projection emitted during a scenario."""

    def __init__(self, values: list[TResponse], errors: list[Exception]):
        self.values = values
        self.errors = errors

    def contains_value(self, value: TResponse) -> bool:
        return value in self.values

    def contains_error_of_type(self, error_type: type[Exception]) -> bool:
        return any(isinstance(error, error_type) for error in self.errors)


class Expectation(ABC):
    @abstractmethod
    def was_met(self, result: Result[Any]) -> bool:
        pass

    @abstractmethod
    def describe(self) -> str:
        pass

    def assert_met(self, result: Result[Any]) -> None:
        if not self.was_met(result):
            raise AssertionError(
                f"Expectation not met: {self.describe()} "
                f"(values={result.values!r}, errors={result.errors!r})"
            )


class EmitsValuesInOrder(Expectation):
    def __init__(self, values: Sequence[Any]):
        self.values = list(values)

    def was_met(self, result: Result[Any]) -> bool:
        return result.values == self.values

    def describe(self) -> str:
        return f"should emit exactly {self.values!r} in order"


class ContainsValue(Expectation):
    def __init__(self, value: Any):
        self.value = value

    def was_met(self, result: Result[Any]) -> bool:
        return result.contains_value(self.value)

    def describe(self) -> str:
        return f"should emit {self.value!r}"


class ContainsErrorOfExactType(Expectation):
    def __init__(self, error_type: type[Exception]):
        self.error_type = error_type

    def was_met(self, result: Result[Any]) -> bool:
        return result.contains_error_of_type(self.error_type)

    def describe(self) -> str:
        return f"should contain error of type {self.error_type.__name__}"


class DoesNotEmit(Expectation):
    def was_met(self, result: Result[Any]) -> bool:
        return not result.values and not result.errors

    def describe(self) -> str:
        return "should not emit any values or errors"


class Scenario(ABC, Generic[TResponse]):
    def __init__(self) -> None:
        self.events: list[Event[Any]] = []
        self.expectations: list[Expectation] = []
        self.values: list[TResponse] = []
        self.errors: list[Exception] = []

    def build_result(self) -> Result[TResponse]:
        return Result(values=self.values, errors=self.errors)

    def assert_expectations(self, result: Result[TResponse]) -> None:
        for expectation in self.expectations:
            expectation.assert_met(result)

    def given(self, *events: Event[Any]) -> Self:
        self.events.extend(events)
        return self

    def given_no_events(self) -> Self:
        self.events = []
        return self

    def should_emit(self, *values: TResponse) -> Self:
        self.expectations.append(EmitsValuesInOrder(values))
        return self

    def should_emit_value(self, value: TResponse) -> Self:
        self.expectations.append(ContainsValue(value))
        return self

    def should_raise(self, error_type: type[Exception]) -> Self:
        self.expectations.append(ContainsErrorOfExactType(error_type))
        return self

    def should_not_emit(self) -> Self:
        self.expectations.append(DoesNotEmit())
        return self

    @abstractmethod
    async def perform_actions(self) -> None:
        pass

    async def execute_scenario(self) -> None:
        await self.perform_actions()
        self.assert_expectations(self.build_result())

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_type is not None and exc_value is not None:
            raise exc_value
        else:
            await self.execute_scenario()
