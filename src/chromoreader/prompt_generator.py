"""
Prompt generation utilities for ChromoReader.

This module centralises every instruction sent to a language model:

* :func:`generate_summary_prompt` asks for the short digest of one chunk.
* :func:`generate_system_prompt` frames an exploration session: the
  question, the available tools and a navigable preview of the chunk
  summaries.  Full chunk content is never included; the agent reads it on
  demand through the tools.
* :func:`generate_kickoff_prompt` is the first user turn of a session.
* ``FIGURE_ANALYSIS_PROMPT`` and ``TABLE_EXTRACTION_PROMPT`` drive the
  vision tools.
* :func:`generate_row_extraction_prompt` wraps an answer for the CSV
  row extractor.
"""

from typing import Iterable, List

from chromoreader.states import ChunkWithSummary


DEFAULT_QUESTION = (
    "Give a list of label\tAbsorption max (nm)\tEmission max (nm)\tLifetime (ns)\tQuantum yield "
    "for the compounds mentioned in the document."
)

SUMMARY_WORDS = 50

FIGURE_ANALYSIS_PROMPT = (
    "Analyze this figure and answer the following query: {query}\n\n"
    "Notice that the query may contain information that does not exist in the figure. In that case, "
    "you should explain what is inside the figure and try to extract related information only from the "
    "figure itself. Do not make up any information that is not present in the figure."
)

TABLE_EXTRACTION_PROMPT = (
    "Extract the table from this image and convert it to HTML format.\n\n"
    "Requirements:\n"
    "- Return ONLY the HTML table code (starting with <table> and ending with </table>)\n"
    "- Preserve the table structure, including headers, rows, and columns\n"
    "- Maintain the data accuracy from the original table\n"
    "- Use proper HTML table tags: <table>, <thead>, <tbody>, <tr>, <th>, <td>\n"
    "- Do not include any additional text, explanations, or markdown formatting\n"
    "- If the image does not contain a table, respond with an error message"
)

TOOL_DESCRIPTIONS = (
    "- **read_content**: Read the document between two character positions "
    "(startPosition inclusive, endPosition exclusive)\n"
    "- **search_content**: Search the positions of a specific text in the document\n"
    "- **read_figure**: Analyze a figure using visual AI by providing an image URL and a query\n"
    "- **read_table**: Convert a table into HTML by the URL of its image"
)


def generate_summary_prompt(content: str, words: int = SUMMARY_WORDS) -> str:
    """Return the digest request for one chunk of Markdown."""
    return (
        f"Summarize the following markdown content in {words} words. Focus on the main topics and key "
        "information. Pay special attention to and prioritize summarizing any figures, tables, charts, or "
        "data visualizations - describe what they show and their key findings:\n\n"
        f"{content}"
    )


def format_chunk_previews(chunks: Iterable[ChunkWithSummary]) -> str:
    """Render the summary preview block listing every chunk and its span."""
    chunks: List[ChunkWithSummary] = list(chunks)
    total = len(chunks)
    return "\n\n".join(
        f"Chunk {idx}/{total} (chars {chunk.start_char}-{chunk.end_char}):\nSummary: {chunk.summary}"
        for idx, chunk in enumerate(chunks, 1)
    )


def generate_system_prompt(question: str, chunks: Iterable[ChunkWithSummary]) -> str:
    """Return the system instruction of an exploration session.

    Parameters
    ----------
    question: str
        The question the agent must answer.
    chunks: Iterable[ChunkWithSummary]
        Summarized chunks of the document, in ``chunk_index`` order.

    Returns
    -------
    str
        Instructions naming the question, the tools and the chunk map.
    """
    return (
        "You are an intelligent document reading agent designed to answer questions by exploring a "
        "document strategically.\n\n"
        f'QUESTION TO ANSWER: "{question}"\n\n'
        "YOUR TASK:\n"
        "Explore the document intelligently to find information that answers the user's question. "
        "You have the following tools:\n\n"
        f"{TOOL_DESCRIPTIONS}\n\n"
        "STRATEGY:\n"
        "- Use read_content to explore promising chunks in whole\n"
        "- If you find image URLs in the content and need to analyze them, use read_figure with the URL\n"
        "- If a table is only available as an image, use read_table with its URL\n\n"
        "DOCUMENT CHUNKS AND SUMMARIES:\n"
        "Below are summaries of different sections of the document to help you navigate. You should use "
        "read_content to read the full content of the most relevant chunks based on these summaries.\n\n"
        f"{format_chunk_previews(chunks)}\n\n"
        "When you're ready to provide the final answer, include it in your last response with clear "
        "explanations and citations."
    )


def generate_kickoff_prompt(question: str) -> str:
    return (
        f'Begin exploring the document to answer the question: "{question}". '
        "Start by searching for relevant content and reading the most promising chunks."
    )


def generate_row_extraction_prompt(question: str, answer: str, headers: List[str]) -> str:
    """Return the instruction turning a free-text answer into table rows."""
    return (
        "You are a data extraction assistant. Extract structured data from the following answer text and "
        "format it according to the specified column headers.\n\n"
        f"Question: {question}\n\n"
        f"Answer: {answer}\n\n"
        f"Column Headers: {', '.join(headers)}\n\n"
        "Instructions:\n"
        "- Extract all relevant data points from the answer text\n"
        "- Create one row for each distinct entity/compound mentioned. You can modify the label and "
        "conditions to it for uniqueness.\n"
        "- Ensure each cell contains only one number\n"
        "- If a value is not found for a header, use an empty string\n\n"
        "Use the tool to return the rows."
    )
