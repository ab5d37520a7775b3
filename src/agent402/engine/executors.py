"""
Event chain execution engine.

Provides workflow orchestration on top of EventBus, processing events
recursively until no handler produces a further event.
"""

import asyncio
from typing import AsyncGenerator, Optional

from .events import BaseEvent, BreakEvent, EventBus, Dependencies


class EventChain:
    """Executes event-driven workflows by chaining event handler results.

    Consumers may stop iterating as soon as they see a terminal event; the
    remaining chain keeps running in the background.
    """

    def __init__(
        self,
        event_bus: EventBus,
        deps: Dependencies,
    ) -> None:
        self.event_bus = event_bus
        self.deps = deps

    async def execute(self, initial_event: BaseEvent) -> AsyncGenerator[BaseEvent, None]:
        """
        Execute event chain starting from initial event.

        Yields:
            Events encountered during chain execution, in production order.

        Raises:
            Any exception raised by a handler, after the events produced
            before it have been yielded.
        """
        events_queue: asyncio.Queue = asyncio.Queue()
        failure: Optional[BaseException] = None

        async def producer():
            nonlocal failure
            try:
                async for event in self._process_event(initial_event):
                    await events_queue.put(event)
            except Exception as exc:
                failure = exc
            finally:
                await events_queue.put(None)  # Sentinel to indicate completion

        task = asyncio.create_task(producer())

        while True:
            event = await events_queue.get()
            if event is None:
                break
            yield event

        await task
        if failure is not None:
            raise failure

    async def _process_event(self, event: BaseEvent) -> AsyncGenerator[BaseEvent, None]:
        if isinstance(event, BreakEvent):
            return

        async for result in self.event_bus.dispatch(event, self.deps):
            if result is None:
                continue
            if isinstance(result, BaseEvent):
                yield result
                async for e in self._process_event(result):
                    yield e
            else:
                raise TypeError(f"Handler returned unsupported type: {type(result).__name__}")
