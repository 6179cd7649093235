"""
Exploration tools exposed to the reading agent.

A :class:`ReaderToolkit` binds four tools to one immutable document and to
the counters and event sink of one session:

* ``read_content`` returns the text between two character positions.
* ``search_content`` finds case-insensitive occurrences of a literal text.
* ``read_figure`` answers a query about an image with a vision model.
* ``read_table`` transcribes a table image into HTML with a vision model.

Every call goes through :meth:`ReaderToolkit.dispatch`, which validates the
arguments against the tool's fixed input schema before anything else
happens.  Arguments and results use camelCase keys because they travel to
and from the model as JSON.  Results are tagged variants: a success model
specific to the tool, or :class:`ToolFailure` carrying a readable reason
the model can act on.  Bad positions, schema violations and vision
transport errors all end up as failures; none of them aborts the session.
"""

import logging
import re
from typing import Any, Dict, List, Literal, NamedTuple, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from chromoreader.events import EventSink, null_sink
from chromoreader.prompt_generator import FIGURE_ANALYSIS_PROMPT, TABLE_EXTRACTION_PROMPT
from chromoreader.states import Document, SessionStats
from chromoreader.vision import OpenAIVision

logger = logging.getLogger(__name__)

CONTEXT_RADIUS = 50


# -----------------------------------------------------------------------------
# Input schemas
# -----------------------------------------------------------------------------

class _ToolInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, extra="forbid")


class ReadContentInput(_ToolInput):
    start_position: int = Field(
        description="The starting character position in the document (0-indexed, inclusive)"
    )
    end_position: int = Field(
        description="The ending character position in the document (0-indexed, exclusive)"
    )


class SearchContentInput(_ToolInput):
    search_text: str = Field(min_length=1, description="Text to search for in the document")
    max_results: int = Field(default=5, ge=1, description="Maximum number of results to return (default: 5)")


class ReadFigureInput(_ToolInput):
    image_url: str = Field(description="The URL of the image to analyze")
    query: str = Field(
        description=(
            "The question or analysis request for the figure (e.g., 'What does this graph show?', "
            "'Describe the structure in this diagram')"
        )
    )


class ReadTableInput(_ToolInput):
    image_url: str = Field(description="The URL of the image containing the table to extract")


# -----------------------------------------------------------------------------
# Result variants
# -----------------------------------------------------------------------------

class _ToolResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ToolFailure(_ToolResult):
    success: Literal[False] = False
    error: str
    document_length: Optional[int] = None


class ReadContentMetadata(_ToolResult):
    start_position: int
    end_position: int
    content_length: int
    total_document_length: int
    has_more_before: bool
    has_more_after: bool


class ReadContentResult(_ToolResult):
    success: Literal[True] = True
    content: str
    metadata: ReadContentMetadata


class SearchMatch(_ToolResult):
    position: int
    context: str


class SearchContentResult(_ToolResult):
    success: Literal[True] = True
    search_text: str
    results_found: int
    results: List[SearchMatch]
    has_more: bool


class ReadFigureResult(_ToolResult):
    success: Literal[True] = True
    image_url: str
    query: str
    analysis: str


class ReadTableResult(_ToolResult):
    success: Literal[True] = True
    image_url: str
    table_html: str


ToolResult = Union[ToolFailure, ReadContentResult, SearchContentResult, ReadFigureResult, ReadTableResult]


class ToolDefinition(NamedTuple):
    input_model: Type[_ToolInput]
    description: str


TOOL_DEFINITIONS: Dict[str, ToolDefinition] = {
    "read_content": ToolDefinition(
        ReadContentInput,
        "Read content from the document between two positions. Returns text from startPosition to "
        "endPosition. Use this to explore specific parts of the document.",
    ),
    "search_content": ToolDefinition(
        SearchContentInput,
        "Search for specific text in the document (case-insensitive). Returns the positions where the "
        "text is found with surrounding context.",
    ),
    "read_figure": ToolDefinition(
        ReadFigureInput,
        "Analyze a figure/image using visual AI. Provide an image URL and a query to ask specific "
        "questions about the figure.",
    ),
    "read_table": ToolDefinition(
        ReadTableInput,
        "Extract and convert a table from an image into HTML format. Provide an image URL containing "
        "a table.",
    ),
}


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(item) for item in err["loc"]) or "arguments"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


class ReaderToolkit:
    """The exploration tools of one session.

    Parameters
    ----------
    document: Document
        The document every tool reads from.  Never modified.
    stats: SessionStats
        Session counters incremented by the tools.
    emit: EventSink
        Receives ``tool_call`` and result events.
    vision: object
        Vision capability exposing ``async analyze(image_url, prompt)``.
        Defaults to :class:`~chromoreader.vision.OpenAIVision`.
    """

    def __init__(
        self,
        document: Document,
        stats: Optional[SessionStats] = None,
        emit: EventSink = null_sink,
        vision: Optional[Any] = None,
    ) -> None:
        self.document = document
        self.stats = stats if stats is not None else SessionStats()
        self.emit = emit
        self.vision = vision if vision is not None else OpenAIVision()

    # ------------------------------------------------------------------
    # Model-facing interface
    # ------------------------------------------------------------------

    @staticmethod
    def tool_specs() -> List[Dict[str, Any]]:
        """Function declarations in the OpenAI tool format, for ``bind_tools``."""
        specs = []
        for name, definition in TOOL_DEFINITIONS.items():
            parameters = definition.input_model.model_json_schema(by_alias=True)
            parameters.pop("title", None)
            specs.append({
                "type": "function",
                "function": {
                    "name": name,
                    "description": definition.description,
                    "parameters": parameters,
                },
            })
        return specs

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        """Validate a tool request and run it.

        Unknown tools and arguments that do not match the input schema are
        rejected before any counter or event is touched.
        """
        definition = TOOL_DEFINITIONS.get(name)
        if definition is None:
            return ToolFailure(
                error=f"Unknown tool '{name}'. Available tools: {', '.join(TOOL_DEFINITIONS)}."
            )
        try:
            params = definition.input_model.model_validate(arguments or {})
        except ValidationError as e:
            return ToolFailure(error=f"Invalid arguments for {name}: {_describe_validation_error(e)}")
        return await getattr(self, name)(**params.model_dump())

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def read_content(self, start_position: int, end_position: int) -> ToolResult:
        self.stats.tool_calls += 1
        self.stats.content_reads += 1
        self.emit("tool_call", {
            "tool": "read_content",
            "startPosition": start_position,
            "endPosition": end_position,
        })

        length = self.document.length
        if start_position < 0 or start_position > length:
            return ToolFailure(
                error=f"Invalid startPosition {start_position}. Document length is {length} characters.",
                document_length=length,
            )
        if end_position < 0 or end_position > length:
            return ToolFailure(
                error=f"Invalid endPosition {end_position}. Document length is {length} characters.",
                document_length=length,
            )
        if start_position >= end_position:
            return ToolFailure(
                error=f"startPosition ({start_position}) must be less than endPosition ({end_position}).",
                document_length=length,
            )

        content = self.document.full_content[start_position:end_position]
        self.emit("content_read", {
            "startPosition": start_position,
            "endPosition": end_position,
            "contentLength": len(content),
        })
        return ReadContentResult(
            content=content,
            metadata=ReadContentMetadata(
                start_position=start_position,
                end_position=end_position,
                content_length=len(content),
                total_document_length=length,
                has_more_before=start_position > 0,
                has_more_after=end_position < length,
            ),
        )

    async def search_content(self, search_text: str, max_results: int = 5) -> ToolResult:
        self.stats.tool_calls += 1
        self.emit("tool_call", {
            "tool": "search_content",
            "searchText": search_text,
            "maxResults": max_results,
        })

        text = self.document.full_content
        results: List[SearchMatch] = []
        has_more = False
        # finditer resumes after each match's end, so matches never overlap
        for match in re.finditer(re.escape(search_text), text, flags=re.IGNORECASE):
            if len(results) == max_results:
                has_more = True
                break
            start = max(0, match.start() - CONTEXT_RADIUS)
            end = min(len(text), match.end() + CONTEXT_RADIUS)
            results.append(SearchMatch(position=match.start(), context=f"...{text[start:end]}..."))

        self.emit("search_complete", {"searchText": search_text, "resultsFound": len(results)})
        return SearchContentResult(
            search_text=search_text,
            results_found=len(results),
            results=results,
            has_more=has_more,
        )

    async def read_figure(self, image_url: str, query: str) -> ToolResult:
        self.stats.tool_calls += 1
        self.stats.figure_analyses += 1
        self.emit("tool_call", {"tool": "read_figure", "imageUrl": image_url, "query": query})

        try:
            analysis = await self.vision.analyze(image_url, FIGURE_ANALYSIS_PROMPT.format(query=query))
        except Exception as e:
            logger.warning(f"Error analyzing figure at {image_url}: {e}")
            return ToolFailure(error=f"Failed to analyze figure: {e}")

        self.emit("figure_analyzed", {
            "imageUrl": image_url,
            "query": query,
            "result": analysis,
            "analysisLength": len(analysis),
        })
        return ReadFigureResult(image_url=image_url, query=query, analysis=analysis)

    async def read_table(self, image_url: str) -> ToolResult:
        self.stats.tool_calls += 1
        self.emit("tool_call", {"tool": "read_table", "imageUrl": image_url})

        try:
            table_html = await self.vision.analyze(image_url, TABLE_EXTRACTION_PROMPT)
        except Exception as e:
            logger.warning(f"Error extracting table from {image_url}: {e}")
            return ToolFailure(error=f"Failed to extract table: {e}")

        self.emit("table_extracted", {"imageUrl": image_url, "htmlLength": len(table_html)})
        return ReadTableResult(image_url=image_url, table_html=table_html)
