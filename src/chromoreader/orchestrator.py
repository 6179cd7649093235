"""
Top-level assembly of the ChromoReader pipeline.

Each paper moves through a chain of flat files in the dataset directory::

    paper.html  ->  paper.html.json  ->  paper.html_answer.json  ->  paper.html_extracted.csv

1. :func:`prepare_document` normalizes the HTML to Markdown, cuts it into
   overlapping chunks, summarizes every chunk and stores the result as a
   :class:`~chromoreader.states.DocumentRecord`.
2. :func:`run` loads a record, lets the exploration agent answer the
   question, saves ``{question, answer}`` and converts the answer into CSV
   rows.
3. :func:`run_batch` applies :func:`run` to every prepared record in a
   directory, skipping papers that already have a CSV file.

The functions are invoked from the command line via ``python -m
chromoreader``.  Models and limits default to :mod:`chromoreader.app_config`
and can be overridden per call.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from chromoreader.app_config import settings
from chromoreader.config import _env_path
from chromoreader.csv_export import csv_path_for, extract_rows, write_csv
from chromoreader.errors import NoAnswerError
from chromoreader.events import EventLog, EventSink, null_sink
from chromoreader.extractors import get_llm
from chromoreader.nodes.chunking import chunk_text, html_to_markdown
from chromoreader.nodes.explorer import AgenticReader, ExplorationOptions
from chromoreader.nodes.summarizer import summarize_chunks
from chromoreader.prompt_generator import DEFAULT_QUESTION
from chromoreader.states import DocumentRecord

RECORD_SUFFIX = ".json"
ANSWER_SUFFIX = "_answer.json"


def record_path_for(html_path: Union[str, Path]) -> Path:
    html_path = Path(html_path)
    return html_path.with_name(html_path.name + RECORD_SUFFIX)


def answer_path_for(record_path: Union[str, Path]) -> Path:
    """``paper.html.json`` -> ``paper.html_answer.json``."""
    record_path = Path(record_path)
    base = record_path.name[: -len(RECORD_SUFFIX)] if record_path.name.endswith(RECORD_SUFFIX) else record_path.name
    return record_path.with_name(base + ANSWER_SUFFIX)


async def prepare_document(
    html_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    chunk_size: Optional[int] = None,
    chunk_overlap: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    summary_model: Optional[str] = None,
    llm: Optional[Any] = None,
) -> DocumentRecord:
    """Normalize, chunk and summarize one HTML paper and save the record.

    Parameters
    ----------
    html_path: str or Path
        HTML produced by the PDF parsing service.
    output_path: Optional path
        Where to write the record.  Defaults to ``<html_path>.json``.
    chunk_size, chunk_overlap, max_concurrency: Optional[int]
        Override the configured chunking and concurrency limits.
    summary_model: Optional[str]
        Override the summary model.
    llm: Optional chat model
        Injected summary model; built with :func:`get_llm` when omitted.

    Returns
    -------
    DocumentRecord
        The saved record.
    """
    html_path = Path(html_path)
    markdown = html_to_markdown(html_path.read_text(encoding="utf-8"))
    chunks = chunk_text(
        markdown,
        chunk_size=chunk_size or settings.chunk_size,
        overlap=settings.chunk_overlap if chunk_overlap is None else chunk_overlap,
    )
    print(f"Document {html_path.name}: {len(markdown)} characters, {len(chunks)} chunks")

    llm = llm if llm is not None else get_llm("summary", model=summary_model)
    summarized = await summarize_chunks(
        chunks,
        llm,
        max_concurrency=max_concurrency or settings.max_concurrency,
    )

    record = DocumentRecord(full_content=markdown, chunks=summarized)
    output_path = record.save(output_path or record_path_for(html_path))
    print(f"Saved document record to {output_path}")
    return record


async def run(
    record_path: Union[str, Path],
    question: str = DEFAULT_QUESTION,
    max_iterations: Optional[int] = None,
    explorer_model: Optional[str] = None,
    extraction_model: Optional[str] = None,
    include_metadata: Optional[bool] = None,
    emit: EventSink = null_sink,
    extract_csv: bool = True,
    llm: Optional[Any] = None,
    vision: Optional[Any] = None,
) -> Dict[str, Any]:
    """Answer ``question`` about one prepared paper and write its outputs.

    Parameters
    ----------
    record_path: str or Path
        A ``<name>.html.json`` document record.
    question: str
        The question to answer.  Defaults to the spectroscopy table request.
    max_iterations, explorer_model, include_metadata:
        Override the configured exploration options.
    extraction_model: Optional[str]
        Override the model used to turn the answer into CSV rows.
    emit: EventSink
        Receives every session event.
    extract_csv: bool
        Whether to convert the answer into ``<name>.html_extracted.csv``.
    llm, vision:
        Injected reasoning model and vision capability.

    Returns
    -------
    dict
        ``answer``, ``answer_path``, ``csv_path`` (or None), ``row_count``,
        ``steps`` and ``stats``.

    Raises
    ------
    NoAnswerError
        If the session failed or produced a blank answer.
    """
    record_path = Path(record_path)
    if _env_path:
        print(f"Loaded environment variables from: {_env_path}")

    options = ExplorationOptions(
        max_iterations=max_iterations or settings.max_iterations,
        model=explorer_model or settings.explorer_model,
        include_metadata=settings.include_metadata if include_metadata is None else include_metadata,
        history_window=settings.history_window,
    )
    record = DocumentRecord.load(record_path)

    log = EventLog(forward=emit)
    reader = AgenticReader(options, llm=llm, vision=vision)
    result = await reader.explore(question, record, log)
    if result.error is not None:
        raise NoAnswerError(f"Exploration of {record_path.name} failed: {result.error}")
    if not result.answered:
        raise NoAnswerError(f"Exploration of {record_path.name} produced no answer")

    answer_path = answer_path_for(record_path)
    with open(answer_path, "w", encoding="utf-8") as f:
        json.dump({"question": question, "answer": result.answer}, f, ensure_ascii=False, indent=2)
    print(f"Saved answer to {answer_path}")

    csv_path = None
    row_count = 0
    if extract_csv:
        rows = await extract_rows(question, result.answer, model=extraction_model)
        csv_path = write_csv(rows, csv_path_for(answer_path))
        row_count = len(rows)
        print(f"Saved {row_count} rows to {csv_path}")

    return {
        "answer": result.answer,
        "answer_path": str(answer_path),
        "csv_path": str(csv_path) if csv_path else None,
        "row_count": row_count,
        "steps": result.steps,
        "stats": result.stats.model_dump(),
        "tool_calls": len(log.of_kind("tool_call")),
    }


async def run_batch(
    dataset_dir: Union[str, Path],
    question: str = DEFAULT_QUESTION,
    skip_existing: bool = True,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Run :func:`run` on every ``*.html.json`` record in ``dataset_dir``.

    Papers are processed sequentially.  A failure is reported and the batch
    moves on to the next paper.
    """
    dataset_dir = Path(dataset_dir)
    records = sorted(dataset_dir.glob("*.html.json"))
    print(f"\nFound {len(records)} document records to process")
    print("=" * 60)

    results_summary = []
    for i, record_path in enumerate(records, 1):
        csv_path = csv_path_for(answer_path_for(record_path))
        if skip_existing and csv_path.exists():
            print(f"Skipping {record_path.name}: {csv_path.name} already exists")
            results_summary.append({"record": record_path.name, "success": True, "skipped": True})
            continue

        print(f"\n{'=' * 60}")
        print(f"Processing {i}/{len(records)}: {record_path.name}")
        print(f"{'=' * 60}\n")
        try:
            result = await run(record_path, question=question, **kwargs)
            results_summary.append({
                "record": record_path.name,
                "success": True,
                "skipped": False,
                "rows": result["row_count"],
                "steps": result["steps"],
            })
        except Exception as e:
            print(f"\nError processing {record_path.name}: {e}")
            results_summary.append({"record": record_path.name, "success": False, "error": str(e)})

    successful = sum(1 for r in results_summary if r["success"])
    skipped = sum(1 for r in results_summary if r.get("skipped"))
    failed = len(results_summary) - successful

    print(f"\n{'=' * 60}")
    print("PROCESSING SUMMARY")
    print(f"{'=' * 60}\n")
    print(f"Total records: {len(results_summary)}")
    print(f"Successful: {successful - skipped}")
    print(f"Skipped: {skipped}")
    print(f"Failed: {failed}")
    for r in results_summary:
        if not r["success"]:
            print(f"[ERROR] {r['record']}: {r.get('error', 'Unknown error')}")

    return {
        "total": len(results_summary),
        "successful": successful - skipped,
        "skipped": skipped,
        "failed": failed,
        "results": results_summary,
    }
