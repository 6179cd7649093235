"""
Event sinks for exploration sessions.

A session reports its progress by calling a sink with an event kind and a
JSON-serialisable payload, in the order operations complete.  Any callable
with the signature ``(kind: str, payload: dict) -> None`` is accepted.  Two
ready-made sinks are provided: :class:`EventLog`, which records the events
for later inspection, and :func:`console_sink`, which prints them.
"""

import json
from typing import Any, Callable, Dict, List, Optional

from chromoreader.states import Event

EventSink = Callable[[str, Dict[str, Any]], None]


def null_sink(kind: str, payload: Dict[str, Any]) -> None:
    """Discard an event."""


def console_sink(kind: str, payload: Dict[str, Any]) -> None:
    """Print an event the way interactive runs display them."""
    print(f"\n[EVENT: {kind.upper()}]")
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
    print("-" * 80)


class EventLog:
    """Sink that keeps every event of a session in emission order.

    An optional ``forward`` sink receives each event after it is recorded,
    which lets the CLI both print and inspect a session.
    """

    def __init__(self, forward: Optional[EventSink] = None) -> None:
        self.events: List[Event] = []
        self.forward = forward

    def __call__(self, kind: str, payload: Dict[str, Any]) -> None:
        self.events.append(Event(kind=kind, payload=dict(payload)))
        if self.forward is not None:
            self.forward(kind, payload)

    def kinds(self) -> List[str]:
        return [event.kind for event in self.events]

    def of_kind(self, kind: str) -> List[Event]:
        return [event for event in self.events if event.kind == kind]

    def last(self, kind: str) -> Optional[Event]:
        matching = self.of_kind(kind)
        return matching[-1] if matching else None

    @property
    def answer(self) -> Optional[str]:
        event = self.last("answer")
        return event.payload.get("answer") if event else None
