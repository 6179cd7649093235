"""
Benchmark extracted CSV files against a ground-truth spreadsheet.

Each ``<doi>.html_extracted.csv`` file is compared with the ground-truth
rows whose ``link`` contains the file's DOI (``:`` in the file name stands
for ``/`` in the DOI) and whose absorption maximum is reported.

Matching rules
--------------
* An extracted row is paired with the first ground-truth row whose
  absorption maximum agrees within tolerance.
* A paired row counts as matched when absorption, emission, lifetime and
  quantum yield all agree.  Empty ground-truth cells always agree.
* Two numbers agree when they differ by at most 0.1 or by at most 1 % of
  the ground-truth value.  A ground-truth value of exactly zero only
  admits the absolute rule.

Precision is matched / extracted, recall is matched / ground truth, and F1
is their harmonic mean (0 when undefined).  Overall metrics are computed
from the totals over all files, not averaged per file.
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import pandas as pd
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ABSOLUTE_TOLERANCE = 0.1
RELATIVE_TOLERANCE = 0.01

# Extracted column -> ground-truth column
FIELD_MAP = [
    ("absorption_max_nm", "Absorption max (nm)"),
    ("emission_max_nm", "Emission max (nm)"),
    ("lifetime_ns", "Lifetime (ns)"),
    ("quantum_yield", "Quantum yield"),
]

_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_EXTRACTED_NAME = re.compile(r"^(.+)\.html_extracted\.csv$")


class MatchResult(BaseModel):
    label: str
    absorption_match: bool = False
    emission_match: bool = False
    lifetime_match: bool = False
    quantum_yield_match: bool = False
    found_in_ground_truth: bool = False


class BenchmarkResult(BaseModel):
    filename: str
    doi: str
    total_extracted: int
    total_ground_truth: int
    matched_entries: int
    precision: float
    recall: float
    f1_score: float
    matches: List[MatchResult] = Field(default_factory=list)


class BenchmarkSummary(BaseModel):
    files_processed: int
    total_extracted: int
    total_ground_truth: int
    total_matched: int
    precision: float
    recall: float
    f1_score: float


def parse_number(value) -> Optional[float]:
    """Parse the leading number of a cell (``"412 nm"`` -> 412.0), or None."""
    if value is None:
        return None
    match = _NUMBER.match(str(value))
    if not match:
        return None
    return float(match.group(0))


def within_tolerance(
    value: float,
    reference: float,
    absolute: float = ABSOLUTE_TOLERANCE,
    relative: float = RELATIVE_TOLERANCE,
) -> bool:
    diff = abs(value - reference)
    if diff <= absolute:
        return True
    if reference == 0:
        return False
    return diff / abs(reference) <= relative


def compare_numerical(extracted: str, ground_truth: str) -> bool:
    """Compare one extracted cell with its ground-truth cell."""
    if not str(ground_truth or "").strip():
        return True
    reference = parse_number(ground_truth)
    value = parse_number(extracted)
    if reference is None or value is None:
        return False
    return within_tolerance(value, reference)


def precision_recall_f1(matched: int, extracted: int, ground_truth: int) -> Tuple[float, float, float]:
    precision = matched / extracted if extracted > 0 else 0.0
    recall = matched / ground_truth if ground_truth > 0 else 0.0
    f1 = 2 * precision * recall / (precision + recall) if precision + recall > 0 else 0.0
    return precision, recall, f1


def extract_doi(filename: str) -> str:
    """``10.1021:cm400945h.html_extracted.csv`` -> ``10.1021/cm400945h``."""
    match = _EXTRACTED_NAME.match(filename)
    if not match:
        return ""
    return match.group(1).replace(":", "/")


def load_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Read a CSV keeping every cell as a string and empty cells as ``""``."""
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def relevant_ground_truth(ground_truth: pd.DataFrame, doi: str) -> pd.DataFrame:
    if not doi or "link" not in ground_truth.columns:
        return ground_truth.iloc[0:0]
    in_paper = ground_truth["link"].str.contains(doi, regex=False)
    has_absorption = ground_truth["Absorption max (nm)"].str.strip() != ""
    return ground_truth[in_paper & has_absorption]


def _find_reference(absorption: Optional[float], candidates: pd.DataFrame):
    if absorption is None:
        return None
    for _, row in candidates.iterrows():
        reference = parse_number(row["Absorption max (nm)"])
        if reference is not None and within_tolerance(absorption, reference):
            return row
    return None


def benchmark_frame(
    extracted: pd.DataFrame,
    ground_truth: pd.DataFrame,
    filename: str,
    doi: str,
) -> BenchmarkResult:
    """Score one extracted table against the ground-truth rows of its paper."""
    candidates = relevant_ground_truth(ground_truth, doi)
    matches: List[MatchResult] = []
    matched = 0

    for _, row in extracted.iterrows():
        label = str(row.get("label", ""))
        reference = _find_reference(parse_number(row.get("absorption_max_nm")), candidates)
        if reference is None:
            matches.append(MatchResult(label=label))
            continue

        absorption, emission, lifetime, quantum_yield = (
            compare_numerical(row.get(ours, ""), reference[theirs]) for ours, theirs in FIELD_MAP
        )
        if absorption and emission and lifetime and quantum_yield:
            matched += 1
        matches.append(MatchResult(
            label=label,
            absorption_match=absorption,
            emission_match=emission,
            lifetime_match=lifetime,
            quantum_yield_match=quantum_yield,
            found_in_ground_truth=True,
        ))

    precision, recall, f1 = precision_recall_f1(matched, len(extracted), len(candidates))
    return BenchmarkResult(
        filename=filename,
        doi=doi,
        total_extracted=len(extracted),
        total_ground_truth=len(candidates),
        matched_entries=matched,
        precision=precision,
        recall=recall,
        f1_score=f1,
        matches=matches,
    )


def benchmark_file(extracted_path: Union[str, Path], ground_truth: pd.DataFrame) -> BenchmarkResult:
    extracted_path = Path(extracted_path)
    filename = extracted_path.name
    doi = extract_doi(filename)
    logger.info(f"Benchmarking {filename} (DOI: {doi})")
    result = benchmark_frame(load_csv(extracted_path), ground_truth, filename, doi)
    logger.info(
        f"{filename}: {result.matched_entries} matched, "
        f"{result.total_extracted} extracted, {result.total_ground_truth} in ground truth"
    )
    return result


def summarize(results: Sequence[BenchmarkResult]) -> BenchmarkSummary:
    """Overall metrics computed from totals across files."""
    total_extracted = sum(r.total_extracted for r in results)
    total_ground_truth = sum(r.total_ground_truth for r in results)
    total_matched = sum(r.matched_entries for r in results)
    precision, recall, f1 = precision_recall_f1(total_matched, total_extracted, total_ground_truth)
    return BenchmarkSummary(
        files_processed=len(results),
        total_extracted=total_extracted,
        total_ground_truth=total_ground_truth,
        total_matched=total_matched,
        precision=precision,
        recall=recall,
        f1_score=f1,
    )


def print_result(result: BenchmarkResult) -> None:
    print("\n" + "=" * 80)
    print(result.filename)
    print("=" * 80)
    print(f"DOI: {result.doi}")
    print(f"   Total Extracted:    {result.total_extracted}")
    print(f"   Total Ground Truth: {result.total_ground_truth}")
    print(f"   Matched Entries:    {result.matched_entries}")
    print(f"   Precision: {result.precision * 100:.2f}%")
    print(f"   Recall:    {result.recall * 100:.2f}%")
    print(f"   F1 Score:  {result.f1_score * 100:.2f}%")


def print_summary(summary: BenchmarkSummary) -> None:
    print("\n" + "=" * 80)
    print("OVERALL SUMMARY")
    print("=" * 80)
    print(f"Files Processed:    {summary.files_processed}")
    print(f"Total Extracted:    {summary.total_extracted}")
    print(f"Total Ground Truth: {summary.total_ground_truth}")
    print(f"Total Matched:      {summary.total_matched}")
    print(f"\nOverall Precision: {summary.precision * 100:.2f}%")
    print(f"Overall Recall:    {summary.recall * 100:.2f}%")
    print(f"Overall F1 Score:  {summary.f1_score * 100:.2f}%")


def run_benchmark(
    dataset_dir: Union[str, Path],
    ground_truth_path: Optional[Union[str, Path]] = None,
    output_path: Optional[Union[str, Path]] = None,
) -> Tuple[List[BenchmarkResult], BenchmarkSummary]:
    """Benchmark every ``*_extracted.csv`` in ``dataset_dir`` and save the report.

    The ground truth defaults to ``<dataset_dir>/ground.csv`` and the report
    to ``<dataset_dir>/benchmark_results.json``.
    """
    dataset_dir = Path(dataset_dir)
    ground_truth = load_csv(ground_truth_path or dataset_dir / "ground.csv")
    logger.info(f"Loaded {len(ground_truth)} ground truth entries")

    extracted_files = sorted(dataset_dir.glob("*_extracted.csv"))
    print(f"\nFound {len(extracted_files)} extracted files to benchmark")

    results = []
    for path in extracted_files:
        result = benchmark_file(path, ground_truth)
        results.append(result)
        print_result(result)

    summary = summarize(results)
    print_summary(summary)

    output_path = Path(output_path or dataset_dir / "benchmark_results.json")
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump([r.model_dump() for r in results], f, ensure_ascii=False, indent=2)
    print(f"\nResults saved to: {output_path}")
    return results, summary
