"""
Entry point for running the ChromoReader pipeline via the command line.

Usage
-----
::

    python -m chromoreader prepare dataset/paper.html
    python -m chromoreader explore dataset/paper.html.json [--question "..."] [--max-iterations 30]
    python -m chromoreader extract-csv dataset/paper.html_answer.json
    python -m chromoreader batch dataset/ [--no-skip]
    python -m chromoreader benchmark dataset/ [--ground-truth dataset/ground.csv]

``prepare`` accepts several HTML files or a directory of them.  ``explore``
prints every session event and writes the answer and CSV files next to the
record.  ``batch`` explores every record of a directory that has no CSV yet.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from chromoreader.app_config import settings
from chromoreader.benchmark import run_benchmark
from chromoreader.config import ensure_api_key
from chromoreader.csv_export import extract_to_csv
from chromoreader.events import console_sink
from chromoreader.orchestrator import prepare_document, run, run_batch
from chromoreader.prompt_generator import DEFAULT_QUESTION


def _html_files(paths):
    files = []
    for path in map(Path, paths):
        if path.is_dir():
            files.extend(sorted(path.glob("*.html")))
        else:
            files.append(path)
    return files


def _add_exploration_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--question", default=DEFAULT_QUESTION, help="Question the agent must answer.")
    parser.add_argument("--max-iterations", type=int, default=None, help=f"Step budget (default: {settings.max_iterations}).")
    parser.add_argument("--explorer-model", default=None, help=f"Model driving the exploration (default: {settings.explorer_model}).")
    parser.add_argument("--extraction-model", default=None, help=f"Model extracting CSV rows (default: {settings.extraction_model}).")
    parser.add_argument("--include-metadata", action="store_true", default=None, help="Emit the metadata event.")
    parser.add_argument("--no-csv", action="store_true", help="Only save the answer, skip CSV extraction.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chromoreader", description="Agentic reading of chromophore papers.")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s).")
    sub = parser.add_subparsers(dest="command", required=True)

    prepare = sub.add_parser("prepare", help="Convert HTML papers into chunked, summarized document records.")
    prepare.add_argument("paths", nargs="+", help="HTML files or directories containing them.")
    prepare.add_argument("--chunk-size", type=int, default=None, help=f"Chunk width in characters (default: {settings.chunk_size}).")
    prepare.add_argument("--chunk-overlap", type=int, default=None, help=f"Overlap between chunks (default: {settings.chunk_overlap}).")
    prepare.add_argument("--max-concurrency", type=int, default=None, help=f"Concurrent summaries (default: {settings.max_concurrency}).")
    prepare.add_argument("--summary-model", default=None, help=f"Summary model (default: {settings.summary_model}).")

    explore = sub.add_parser("explore", help="Answer the question about one prepared document.")
    explore.add_argument("record", help="Path to a <name>.html.json document record.")
    _add_exploration_arguments(explore)

    extract = sub.add_parser("extract-csv", help="Convert answer files into CSV rows.")
    extract.add_argument("answers", nargs="+", help="Paths to <name>.html_answer.json files.")
    extract.add_argument("--extraction-model", default=None, help=f"Model extracting CSV rows (default: {settings.extraction_model}).")

    batch = sub.add_parser("batch", help="Explore every prepared document of a directory.")
    batch.add_argument("dataset_dir", nargs="?", default=settings.output_dir, help="Directory of document records (default: %(default)s).")
    batch.add_argument("--no-skip", action="store_true", help="Re-run papers that already have a CSV file.")
    _add_exploration_arguments(batch)

    bench = sub.add_parser("benchmark", help="Score extracted CSV files against the ground truth.")
    bench.add_argument("dataset_dir", nargs="?", default=settings.output_dir, help="Directory of extracted CSV files (default: %(default)s).")
    bench.add_argument("--ground-truth", default=None, help="Ground-truth CSV (default: <dataset_dir>/ground.csv).")
    bench.add_argument("--output", default=None, help="Report path (default: <dataset_dir>/benchmark_results.json).")
    return parser


async def _prepare(args) -> int:
    files = _html_files(args.paths)
    if not files:
        print("Error: No HTML files found")
        return 1
    failed = 0
    for i, html_path in enumerate(files, 1):
        print(f"\nPreparing {i}/{len(files)}: {html_path.name}")
        try:
            await prepare_document(
                html_path,
                chunk_size=args.chunk_size,
                chunk_overlap=args.chunk_overlap,
                max_concurrency=args.max_concurrency,
                summary_model=args.summary_model,
            )
        except Exception as e:
            failed += 1
            print(f"Error preparing {html_path.name}: {e}")
    return 1 if failed else 0


def _exploration_kwargs(args) -> dict:
    return {
        "max_iterations": args.max_iterations,
        "explorer_model": args.explorer_model,
        "extraction_model": args.extraction_model,
        "include_metadata": args.include_metadata,
        "extract_csv": not args.no_csv,
    }


async def _explore(args) -> int:
    try:
        result = await run(args.record, question=args.question, emit=console_sink, **_exploration_kwargs(args))
    except Exception as e:
        print(f"\nError exploring {args.record}: {e}")
        return 1
    print(f"\nFinished exploration in {result['steps']} steps ({result['tool_calls']} tool calls)")
    print(f"   Answer: {result['answer_path']}")
    if result["csv_path"]:
        print(f"   CSV:    {result['csv_path']} ({result['row_count']} rows)")
    return 0


async def _extract(args) -> int:
    failed = 0
    for answer_path in args.answers:
        try:
            result = await extract_to_csv(answer_path, model=args.extraction_model)
            print(f"{answer_path} -> {result['output_path']} ({result['row_count']} rows)")
        except Exception as e:
            failed += 1
            print(f"Error processing {answer_path}: {e}")
    return 1 if failed else 0


async def _batch(args) -> int:
    summary = await run_batch(
        args.dataset_dir,
        question=args.question,
        skip_existing=not args.no_skip,
        **_exploration_kwargs(args),
    )
    return 1 if summary["failed"] else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "benchmark":
        run_benchmark(args.dataset_dir, ground_truth_path=args.ground_truth, output_path=args.output)
        return 0

    ensure_api_key()
    handlers = {
        "prepare": _prepare,
        "explore": _explore,
        "extract-csv": _extract,
        "batch": _batch,
    }
    return asyncio.run(handlers[args.command](args))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
