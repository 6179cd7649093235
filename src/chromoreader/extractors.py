"""
Model construction and TrustCall extractor definitions for ChromoReader.

This module provides :func:`get_llm`, which builds a fresh ``ChatOpenAI``
for a given pipeline stage, and the Pydantic models used by the TrustCall
extractor that turns the exploration agent's free-text answer into
spreadsheet rows.

* ``get_llm("summary")`` returns the model producing chunk digests.
* ``get_llm("explorer")`` returns the model driving the exploration loop.
* ``row_extractor`` returns a ``SpectroscopyTable`` with one
  ``SpectroscopyRow`` per compound/condition mentioned in the answer.

The lazy binding of the extractor ensures that long‑running batch jobs do
not hold onto stale language model instances and makes it straightforward
to adjust the model name via environment variables.
"""

from typing import Any, Dict, List, Optional

from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field
from trustcall import create_extractor

from chromoreader.app_config import settings


CSV_HEADERS = [
    "label",
    "absorption_max_nm",
    "emission_max_nm",
    "lifetime_ns",
    "quantum_yield",
]


def get_llm(agent_type: str = "default", model: Optional[str] = None) -> ChatOpenAI:
    """Instantiate a ChatOpenAI using the current settings for a specific stage.

    A new instance is created on each call to avoid stale connections
    persisting across multiple documents.

    Parameters
    ----------
    agent_type: str
        The stage requesting the LLM. One of: "summary", "explorer",
        "extraction" or "default".
    model: Optional[str]
        Explicit model name overriding the configured one.

    Returns
    -------
    ChatOpenAI
        Configured ChatOpenAI instance for the specified stage.
    """
    model_map = {
        "summary": settings.summary_model,
        "explorer": settings.explorer_model,
        "extraction": settings.extraction_model,
        "default": settings.model_name,
    }

    model = model or model_map.get(agent_type, settings.model_name)

    # GPT-5 models don't support temperature parameter
    if "gpt-5" in model:
        return ChatOpenAI(model=model)
    else:
        return ChatOpenAI(model=model, temperature=settings.temperature)


class _LazyExtractor:
    """Wrapper around create_extractor that binds to a fresh LLM each call.

    Parameters
    ----------
    tools: list
        A list of Pydantic models that define the tool schema.
    tool_choice: str
        The name of the tool (usually the name of the Pydantic class) to
        select when multiple tools are provided.
    agent_type: str
        The stage this extractor is for (determines which model to use).
    """

    def __init__(self, tools: list, tool_choice: str, agent_type: str = "default") -> None:
        self.tools = tools
        self.tool_choice = tool_choice
        self.agent_type = agent_type

    def _build(self, model: Optional[str] = None):
        llm = get_llm(agent_type=self.agent_type, model=model)
        return create_extractor(llm, tools=self.tools, tool_choice=self.tool_choice)

    async def ainvoke(self, *args, model: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        return await self._build(model).ainvoke(*args, **kwargs)


# -----------------------------------------------------------------------------
# Pydantic schemas defining the structure of TrustCall tool outputs
# -----------------------------------------------------------------------------

class SpectroscopyRow(BaseModel):
    """Spectroscopic properties of one chromophore under one set of conditions.

    Every numeric cell holds a single number written as a plain string, or an
    empty string when the answer does not report it.
    """

    label: str = Field(
        description=(
            "Compound label as used in the paper. Append the solvent or condition when the same "
            "compound is reported more than once so that every label is unique."
        )
    )
    absorption_max_nm: str = Field(
        default="",
        description="Absorption maximum in nm (a single number, e.g. '412'), or '' if not reported.",
    )
    emission_max_nm: str = Field(
        default="",
        description="Emission maximum in nm (a single number), or '' if not reported.",
    )
    lifetime_ns: str = Field(
        default="",
        description="Excited-state lifetime in ns (a single number), or '' if not reported.",
    )
    quantum_yield: str = Field(
        default="",
        description="Fluorescence quantum yield as a fraction or percentage number, or '' if not reported.",
    )


class SpectroscopyTable(BaseModel):
    """All rows extracted from one answer."""

    rows: List[SpectroscopyRow] = Field(
        description="One row for each distinct compound/condition mentioned in the answer."
    )


# -----------------------------------------------------------------------------
# Lazy extractors
# -----------------------------------------------------------------------------

row_extractor = _LazyExtractor([SpectroscopyTable], "SpectroscopyTable", agent_type="extraction")
