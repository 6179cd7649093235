"""
ChromoReader
============

Agentic extraction of chromophore spectroscopy data from scientific papers.

Instead of pushing a whole paper through one prompt, ChromoReader lets a
language model explore it.  The package is organised around four pieces:

* A chunker that cuts the normalized Markdown body of a paper into
  overlapping, position-addressed windows.
* A summarizer that writes a short digest of every chunk with a bounded
  pool of concurrent workers.
* A toolkit giving the model span reads, text search, figure analysis and
  table extraction over the paper.
* An exploration controller, a LangGraph loop with a step budget and a
  sliding conversation window, that reports its progress as events and
  ends with the agent's answer.

Around them sit the HTML normalizer, the CSV row extractor, the benchmark
harness and a top-level ``run`` function invoked by the CLI.
"""

from .orchestrator import prepare_document, run, run_batch  # noqa: F401
