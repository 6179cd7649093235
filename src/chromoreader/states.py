"""
Data records and the shared state used by the ChromoReader exploration graph.

Two families of types live here:

* Pydantic records describing the prepared document.  ``Chunk`` and
  ``ChunkWithSummary`` are position-addressed slices of the normalized
  Markdown body, and ``DocumentRecord`` is the JSON file handed from the
  preparation stage to the exploration stage.  On the wire their keys are
  camelCase (``fullContent``, ``chunkIndex``, ``startChar`` ...); in Python
  the snake_case attribute names are used.
* Per-session records.  ``SessionStats`` holds the counters owned by one
  exploration session, ``ExplorationState`` is the TypedDict flowing through
  the LangGraph loop and ``ExplorationResult`` is what the controller
  returns to its caller.

Important fields of ``ExplorationState``
----------------------------------------

* ``messages``: The full conversation (system instruction, kickoff prompt,
  model turns and tool results).  Nodes return only the new messages; the
  graph appends them.
* ``step``: Number of reasoning steps (model calls) performed so far.
* ``max_iterations``: The step budget for the session.
* ``final_text``: Text of the most recent model turn.  Once the loop stops
  this is the session's answer.
"""

import json
import operator
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, TypedDict, Union

from langchain_core.messages import BaseMessage
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from chromoreader.errors import DocumentRecordError


class _WireModel(BaseModel):
    """Base for records serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Document(BaseModel):
    """The full normalized text of one paper.  Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    full_content: str

    @property
    def length(self) -> int:
        return len(self.full_content)


class Chunk(_WireModel):
    """A bounded, positioned slice of a document's normalized text."""

    content: str
    chunk_index: int = Field(ge=0)
    start_char: int = Field(ge=0)
    end_char: int
    total_chunks: int = 0

    @model_validator(mode="after")
    def _check_span(self) -> "Chunk":
        if self.start_char >= self.end_char:
            raise ValueError(
                f"startChar ({self.start_char}) must be less than endChar ({self.end_char})"
            )
        return self


class ChunkWithSummary(Chunk):
    """A chunk together with its generated digest."""

    summary: str


class DocumentRecord(_WireModel):
    """Prepared document as stored in ``<name>.html.json``."""

    full_content: str
    chunks: List[ChunkWithSummary] = Field(default_factory=list)

    def document(self) -> Document:
        return Document(full_content=self.full_content)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), ensure_ascii=False, indent=2)

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.write_text(self.to_json(), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "DocumentRecord":
        """Read and validate a record, checking every chunk lies inside the text."""
        path = Path(path)
        try:
            record = cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise DocumentRecordError(f"Cannot load document record {path}: {e}") from e
        length = len(record.full_content)
        for chunk in record.chunks:
            if chunk.end_char > length:
                raise DocumentRecordError(
                    f"Chunk {chunk.chunk_index} ends at {chunk.end_char}, "
                    f"beyond the document length {length}"
                )
        return record


class SessionStats(BaseModel):
    """Counters owned by a single exploration session."""

    tool_calls: int = 0
    content_reads: int = 0
    figure_analyses: int = 0
    search_iterations: int = 0


class Event(BaseModel):
    """One entry of a session's ordered event stream."""

    kind: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class ExplorationState(TypedDict, total=False):
    """Shared state passed between the exploration graph nodes."""

    messages: Annotated[List[BaseMessage], operator.add]
    step: int
    max_iterations: int
    final_text: str


class ExplorationResult(BaseModel):
    """Outcome of one exploration session as returned to Python callers."""

    answer: str = ""
    steps: int = 0
    stats: SessionStats = Field(default_factory=SessionStats)
    processing_time_ms: int = 0
    error: Optional[str] = None

    @property
    def answered(self) -> bool:
        """True when the session finished without error and produced non-blank text."""
        return self.error is None and bool(self.answer.strip())
