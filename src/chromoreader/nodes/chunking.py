"""
Normalization and chunking of a paper's body text.

:func:`html_to_markdown` turns the HTML produced by the PDF parsing service
into Markdown, the normalized body every position in the pipeline refers
to.  :func:`chunk_text` then cuts that body into overlapping fixed-size
windows.  Both functions are pure: same input, same output, no I/O.
"""

from typing import List

from bs4 import BeautifulSoup
from markdownify import MarkdownConverter

from chromoreader.errors import ChunkingConfigError
from chromoreader.states import Chunk


def html_to_markdown(html: str) -> str:
    """Convert HTML to Markdown, dropping ``<script>`` and ``<style>`` content."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    converter = MarkdownConverter(heading_style="ATX", bullets="-")
    return converter.convert_soup(soup).strip()


def chunk_text(text: str, chunk_size: int = 5000, overlap: int = 1000) -> List[Chunk]:
    """Split text into overlapping windows with position metadata.

    The window starts at offset 0 and advances by ``chunk_size - overlap``.
    The final window is clipped at the end of the text and the loop stops as
    soon as a window reaches it, so the last pair of chunks may overlap by
    more than ``overlap``.

    Parameters
    ----------
    text: str
        Normalized document body.
    chunk_size: int
        Window width in characters.
    overlap: int
        Characters shared by consecutive windows.  Must be smaller than
        ``chunk_size``.

    Returns
    -------
    List[Chunk]
        Chunks in ascending ``chunk_index`` order, each carrying the final
        ``total_chunks``.  Empty text yields no chunks.

    Raises
    ------
    ChunkingConfigError
        If the step size would not be positive.
    """
    if chunk_size <= 0:
        raise ChunkingConfigError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ChunkingConfigError(f"overlap must not be negative, got {overlap}")
    if chunk_size <= overlap:
        raise ChunkingConfigError(
            f"chunk_size ({chunk_size}) must be greater than overlap ({overlap})"
        )

    length = len(text)
    if length == 0:
        return []

    if length <= chunk_size:
        return [Chunk(content=text, chunk_index=0, start_char=0, end_char=length, total_chunks=1)]

    step = chunk_size - overlap
    spans = []
    for start in range(0, length, step):
        end = min(start + chunk_size, length)
        spans.append((start, end))
        if end >= length:
            break

    total = len(spans)
    return [
        Chunk(
            content=text[start:end],
            chunk_index=index,
            start_char=start,
            end_char=end,
            total_chunks=total,
        )
        for index, (start, end) in enumerate(spans)
    ]
