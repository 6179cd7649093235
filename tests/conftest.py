"""Shared fixtures: scripted stand-ins for the chat and vision models."""

import asyncio
import itertools
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pytest
from langchain_core.messages import AIMessage

from chromoreader.states import ChunkWithSummary, DocumentRecord

# A scripted turn is an exception to raise, a ready-made AIMessage, or (text, [(tool_name, args), ...])
Turn = Union[BaseException, AIMessage, Tuple[str, Sequence[Tuple[str, Dict[str, Any]]]]]


class ScriptedChatModel:
    """Tool-calling chat model replaying a fixed list of turns.

    Once the script is exhausted ``default`` is replayed forever.  Every
    call builds a new ``AIMessage`` with unique tool call ids.
    """

    def __init__(self, script: Sequence[Turn] = (), default: Optional[Turn] = None) -> None:
        self.script = list(script)
        self.default = default if default is not None else ("", [])
        self.calls: List[List[Any]] = []
        self.bound_tools: Optional[List[Dict[str, Any]]] = None
        self._ids = itertools.count(1)

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        return self

    async def ainvoke(self, messages, **kwargs) -> AIMessage:
        self.calls.append(list(messages))
        turn = self.script.pop(0) if self.script else self.default
        if isinstance(turn, BaseException):
            raise turn
        if isinstance(turn, AIMessage):
            return turn.model_copy(deep=True)
        text, tool_calls = turn
        return AIMessage(
            content=text,
            tool_calls=[
                {"name": name, "args": dict(args), "id": f"call_{next(self._ids)}"}
                for name, args in tool_calls
            ],
        )


class FakeSummaryModel:
    """Summary model answering with a digest of the chunk's first characters.

    ``delays`` maps a chunk's leading text to a sleep in seconds, which lets
    tests force completions out of order.
    """

    def __init__(self, delays: Optional[Dict[str, float]] = None, fail_on: Sequence[str] = ()) -> None:
        self.delays = delays or {}
        self.fail_on = set(fail_on)
        self.active = 0
        self.peak = 0
        self.prompts: List[str] = []

    async def ainvoke(self, prompt, **kwargs) -> AIMessage:
        content = prompt.split("\n\n", 1)[1]
        key = content[:8]
        self.prompts.append(prompt)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delays.get(key, 0))
            if key in self.fail_on:
                raise RuntimeError(f"model unavailable for {key}")
        finally:
            self.active -= 1
        return AIMessage(content=f"  digest of {key}  ")


class FakeVision:
    """Vision capability returning a canned reply or raising ``error``."""

    def __init__(self, reply: str = "A line plot of absorbance.", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    async def analyze(self, image_url: str, prompt: str) -> str:
        self.calls.append((image_url, prompt))
        if self.error is not None:
            raise self.error
        return self.reply


def make_record(text: str, chunk_size: int = 400) -> DocumentRecord:
    chunks = []
    spans = list(range(0, len(text), chunk_size))
    for index, start in enumerate(spans):
        end = min(start + chunk_size, len(text))
        chunks.append(ChunkWithSummary(
            content=text[start:end],
            chunk_index=index,
            start_char=start,
            end_char=end,
            total_chunks=len(spans),
            summary=f"Section {index}",
        ))
    return DocumentRecord(full_content=text, chunks=chunks)


@pytest.fixture
def paper_text() -> str:
    """1200 characters with "quantum yield" at positions 120 and 980."""
    text = "a" * 120 + "Quantum Yield" + "b" * (980 - 133) + "quantum yield" + "c" * (1200 - 993)
    assert len(text) == 1200
    return text


@pytest.fixture
def record(paper_text) -> DocumentRecord:
    return make_record(paper_text)


@pytest.fixture
def vision() -> FakeVision:
    return FakeVision()
