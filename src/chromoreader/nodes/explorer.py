"""
Exploration controller: one bounded reasoning session over a prepared document.

A session is a small LangGraph state machine built around the session's
:class:`~chromoreader.nodes.tools.ReaderToolkit`::

    START -> call_model -> (tool calls?) -> execute_tools -> (budget left?) -> call_model
                        \\-> END                        \\-> END

``call_model`` presents the conversation to the reasoning model, truncated
to the system instruction plus the most recent ``history_window`` messages,
and counts one step.  ``execute_tools`` runs the requested tools one after
another in the order the model asked for them.  The loop ends when the model
replies without tool calls or once ``max_iterations`` steps have been taken;
in both cases the text of the last model turn is the answer.

Progress is reported through an event sink.  Every session emits exactly one
terminal event: ``answer`` (followed by the optional ``metadata`` and by
``complete``) or ``error``.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langgraph.graph import END, START, StateGraph
from pydantic import BaseModel, ConfigDict, Field

from chromoreader.events import EventSink, null_sink
from chromoreader.extractors import get_llm
from chromoreader.nodes.summarizer import message_text
from chromoreader.nodes.tools import ReaderToolkit, ToolFailure
from chromoreader.prompt_generator import generate_kickoff_prompt, generate_system_prompt
from chromoreader.states import DocumentRecord, ExplorationResult, ExplorationState, SessionStats

logger = logging.getLogger(__name__)


class ExplorationOptions(BaseModel):
    """Validated configuration of an exploration session."""

    model_config = ConfigDict(extra="forbid")

    max_iterations: int = Field(ge=1)
    model: str = "gpt-5-mini"
    include_metadata: bool = False
    history_window: int = Field(default=20, ge=1)


def truncate_history(messages: Sequence[BaseMessage], window: int = 20) -> List[BaseMessage]:
    """Return the messages presented to the model for the next step.

    When the history holds more than ``window`` messages, only the first
    message (the system instruction) and the ``window`` most recent ones are
    kept.  Dropped messages are discarded, not summarized.
    """
    messages = list(messages)
    if len(messages) <= window:
        return messages
    presented = messages[:1] + messages[-window:]
    if isinstance(presented[1], ToolMessage):
        logger.warning(
            f"History window starts with the result of tool call {presented[1].tool_call_id} "
            "whose request was dropped"
        )
    return presented


def route_after_model(state: ExplorationState) -> str:
    """Run the requested tools, or stop when the model answered in plain text."""
    last = state["messages"][-1]
    if isinstance(last, AIMessage) and (last.tool_calls or last.invalid_tool_calls):
        return "execute_tools"
    return END


def route_after_tools(state: ExplorationState) -> str:
    """Continue reasoning while the step budget lasts."""
    if state.get("step", 0) >= state["max_iterations"]:
        return END
    return "call_model"


class AgenticReader:
    """Drive exploration sessions with an injected reasoning model.

    Parameters
    ----------
    options: ExplorationOptions
        Session configuration.  A plain dict is validated into options.
    llm: Optional[BaseChatModel]
        Tool-calling chat model.  Built with :func:`get_llm` from
        ``options.model`` when omitted.
    vision: Optional[object]
        Vision capability handed to the figure and table tools.
    """

    def __init__(
        self,
        options: Any,
        llm: Optional[BaseChatModel] = None,
        vision: Optional[Any] = None,
    ) -> None:
        if not isinstance(options, ExplorationOptions):
            options = ExplorationOptions.model_validate(options)
        self.options = options
        self.llm = llm if llm is not None else get_llm("explorer", model=options.model)
        self.vision = vision

    def build_graph(self, toolkit: ReaderToolkit):
        """Compile the reasoning loop bound to one session's toolkit."""
        llm_with_tools = self.llm.bind_tools(toolkit.tool_specs())
        window = self.options.history_window

        async def call_model(state: ExplorationState) -> Dict[str, Any]:
            presented = truncate_history(state["messages"], window)
            response = await llm_with_tools.ainvoke(presented)
            step = state.get("step", 0) + 1
            logger.debug(f"Step {step}: {len(getattr(response, 'tool_calls', []) or [])} tool call(s)")
            return {
                "messages": [response],
                "step": step,
                "final_text": message_text(response),
            }

        async def execute_tools(state: ExplorationState) -> Dict[str, Any]:
            last = state["messages"][-1]
            outputs = []
            for call in last.tool_calls:
                result = await toolkit.dispatch(call["name"], call.get("args"))
                outputs.append(ToolMessage(
                    content=json.dumps(result.to_payload(), ensure_ascii=False),
                    tool_call_id=call["id"],
                    name=call["name"],
                ))
            # Arguments that are not valid JSON never reach dispatch
            for call in last.invalid_tool_calls:
                name = call.get("name") or "unknown tool"
                failure = ToolFailure(
                    error=f"Invalid arguments for {name}: {call.get('error') or 'arguments are not valid JSON'}"
                )
                outputs.append(ToolMessage(
                    content=json.dumps(failure.to_payload(), ensure_ascii=False),
                    tool_call_id=call.get("id") or "",
                    name=name,
                ))
            return {"messages": outputs}

        builder = StateGraph(ExplorationState)
        builder.add_node("call_model", call_model)
        builder.add_node("execute_tools", execute_tools)
        builder.add_edge(START, "call_model")
        builder.add_conditional_edges("call_model", route_after_model, ["execute_tools", END])
        builder.add_conditional_edges("execute_tools", route_after_tools, ["call_model", END])
        return builder.compile()

    async def explore(
        self,
        question: str,
        record: DocumentRecord,
        emit: EventSink = null_sink,
    ) -> ExplorationResult:
        """Run one session answering ``question`` about ``record``.

        Failures of the reasoning model are reported through a single
        ``error`` event and in :attr:`ExplorationResult.error`; they are not
        raised.
        """
        started = time.monotonic()
        stats = SessionStats()

        try:
            emit("status", {"stage": "starting", "message": "Initializing agentic reader..."})
            document = record.document()
            emit("status", {
                "stage": "document_loaded",
                "message": f"Document loaded: {document.length} characters",
                "documentLength": document.length,
            })

            toolkit = ReaderToolkit(document, stats=stats, emit=emit, vision=self.vision)
            graph = self.build_graph(toolkit)

            emit("status", {"stage": "exploring", "message": "Agent is exploring the document..."})
            initial_state: ExplorationState = {
                "messages": [
                    SystemMessage(content=generate_system_prompt(question, record.chunks)),
                    HumanMessage(content=generate_kickoff_prompt(question)),
                ],
                "step": 0,
                "max_iterations": self.options.max_iterations,
                "final_text": "",
            }
            final_state = await graph.ainvoke(
                initial_state,
                config={"recursion_limit": 2 * self.options.max_iterations + 5},
            )

            steps = final_state.get("step", 0)
            answer = final_state.get("final_text", "")
            stats.search_iterations = steps
            emit("status", {
                "stage": "exploration_complete",
                "message": f"Agent completed exploration in {steps} steps",
                "stats": stats.model_dump(),
            })
        except Exception as e:
            message = str(e) or "An error occurred during reading"
            logger.error(f"Exploration failed: {message}")
            emit("error", {"message": message})
            return ExplorationResult(
                stats=stats,
                processing_time_ms=int((time.monotonic() - started) * 1000),
                error=message,
            )

        if not answer.strip():
            logger.warning(f"Exploration finished after {steps} steps without answer text")
        emit("answer", {"answer": answer})

        elapsed_ms = int((time.monotonic() - started) * 1000)
        if self.options.include_metadata:
            emit("metadata", {"processing_time_ms": elapsed_ms, "stats": stats.model_dump()})
        emit("complete", {"message": "Agentic reading completed successfully"})

        return ExplorationResult(answer=answer, steps=steps, stats=stats, processing_time_ms=elapsed_ms)


async def explore_document(
    question: str,
    record: DocumentRecord,
    options: Any,
    emit: EventSink = null_sink,
    llm: Optional[BaseChatModel] = None,
    vision: Optional[Any] = None,
) -> ExplorationResult:
    """Convenience wrapper running a single session with :class:`AgenticReader`."""
    return await AgenticReader(options, llm=llm, vision=vision).explore(question, record, emit)
