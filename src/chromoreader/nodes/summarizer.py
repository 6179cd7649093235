"""
Concurrent summarization of document chunks.

Every chunk receives a short digest, generated independently of the other
chunks, that the exploration agent later uses as a map of the document.
Summaries are produced by a fixed pool of asyncio workers pulling
``(chunk, index)`` pairs from one shared queue; each result is written to
the slot addressed by its index, so the returned list follows
``chunk_index`` order whatever the completion order.

A failed generation call does not stop the other workers.  Once the queue
is drained, any failure turns the whole operation into a
:class:`~chromoreader.errors.SummarizationError`: the exploration prompt
needs a complete set of summaries, so partial results are never returned.
"""

import asyncio
import logging
from collections import deque
from typing import Any, List, Optional, Sequence, Tuple

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

from chromoreader.errors import ChunkingConfigError, SummarizationError
from chromoreader.prompt_generator import generate_summary_prompt
from chromoreader.states import Chunk, ChunkWithSummary

logger = logging.getLogger(__name__)


def message_text(message: Any) -> str:
    """Return the plain text of a chat model response."""
    content = message.content if isinstance(message, BaseMessage) else message
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class ChunkSummarizer:
    """Generate digests for chunks with bounded concurrency.

    Parameters
    ----------
    llm: BaseChatModel
        Chat model used for every digest.  Only ``ainvoke`` is required.
    max_concurrency: int
        Upper bound on simultaneous generation calls.
    """

    def __init__(self, llm: BaseChatModel, max_concurrency: int = 10) -> None:
        if max_concurrency < 1:
            raise ChunkingConfigError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.llm = llm
        self.max_concurrency = max_concurrency

    async def _summarize_one(self, chunk: Chunk) -> str:
        response = await self.llm.ainvoke(generate_summary_prompt(chunk.content))
        return message_text(response).strip()

    async def summarize(self, chunks: Sequence[Chunk]) -> List[ChunkWithSummary]:
        """Summarize all chunks, preserving their order.

        Raises
        ------
        SummarizationError
            If any digest could not be generated.
        """
        total = len(chunks)
        if total == 0:
            return []

        results: List[Optional[ChunkWithSummary]] = [None] * total
        failures: List[Tuple[int, BaseException]] = []
        queue = deque((chunk, index) for index, chunk in enumerate(chunks))
        completed = 0
        workers = min(self.max_concurrency, total)

        logger.info(f"Starting summarization of {total} chunks with {workers} workers...")

        async def worker() -> None:
            nonlocal completed
            while queue:
                chunk, index = queue.popleft()
                try:
                    summary = await self._summarize_one(chunk)
                except Exception as e:
                    logger.error(f"Summary of chunk {chunk.chunk_index} failed: {e}")
                    failures.append((index, e))
                    continue
                results[index] = ChunkWithSummary(**chunk.model_dump(exclude={"summary"}), summary=summary)
                completed += 1
                logger.info(
                    f"Progress: {completed}/{total} chunks summarized "
                    f"({round(completed / total * 100)}%)"
                )

        await asyncio.gather(*(worker() for _ in range(workers)))

        if failures:
            failures.sort(key=lambda item: item[0])
            raise SummarizationError(
                f"{len(failures)} of {total} chunk summaries failed"
            ) from failures[0][1]

        logger.info("All chunks summarized successfully")
        return results


async def summarize_chunks(
    chunks: Sequence[Chunk],
    llm: BaseChatModel,
    max_concurrency: int = 10,
) -> List[ChunkWithSummary]:
    """Convenience wrapper around :class:`ChunkSummarizer`."""
    return await ChunkSummarizer(llm, max_concurrency=max_concurrency).summarize(chunks)
