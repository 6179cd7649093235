"""
Conversion of exploration answers into spreadsheet rows.

The exploration agent answers in free text.  This module hands that text to
the TrustCall ``row_extractor`` together with the fixed column headers and
writes the resulting rows to ``<name>.html_extracted.csv`` with pandas.
Every cell holds at most one number; values the answer does not report are
written as empty cells.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from chromoreader.errors import DocumentRecordError, NoAnswerError
from chromoreader.extractors import CSV_HEADERS, row_extractor
from chromoreader.prompt_generator import generate_row_extraction_prompt

logger = logging.getLogger(__name__)

ANSWER_SUFFIX = "_answer.json"
CSV_SUFFIX = "_extracted.csv"


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


async def extract_rows(
    question: str,
    answer: str,
    headers: Sequence[str] = CSV_HEADERS,
    model: Optional[str] = None,
) -> List[Dict[str, str]]:
    """Extract one row per compound/condition mentioned in ``answer``.

    Returns
    -------
    List[Dict[str, str]]
        Rows keyed by ``headers``.  Missing values are empty strings.
    """
    prompt = generate_row_extraction_prompt(question, answer, list(headers))
    result = await row_extractor.ainvoke(prompt, model=model)
    # TrustCall returns a dict with a 'responses' key containing the parsed objects
    response = result.get("responses", [None])[0]
    if response is None:
        logger.warning("Row extractor returned no response; writing an empty table")
        return []

    rows = []
    for row in response.rows:
        values = row.model_dump() if hasattr(row, "model_dump") else dict(row)
        rows.append({header: _cell(values.get(header)) for header in headers})
    return rows


def rows_to_frame(rows: Sequence[Dict[str, Any]], headers: Sequence[str] = CSV_HEADERS) -> pd.DataFrame:
    """Build a string-typed frame whose columns follow ``headers`` exactly."""
    frame = pd.DataFrame(list(rows), columns=list(headers))
    return frame.fillna("").astype(str)


def write_csv(
    rows: Sequence[Dict[str, Any]],
    output_path: Union[str, Path],
    headers: Sequence[str] = CSV_HEADERS,
) -> Path:
    output_path = Path(output_path)
    rows_to_frame(rows, headers).to_csv(output_path, index=False)
    return output_path


def csv_path_for(answer_path: Union[str, Path]) -> Path:
    """``paper.html_answer.json`` -> ``paper.html_extracted.csv``."""
    answer_path = Path(answer_path)
    name = answer_path.name
    if name.endswith(ANSWER_SUFFIX):
        name = name[: -len(ANSWER_SUFFIX)]
    else:
        name = answer_path.stem
    return answer_path.with_name(name + CSV_SUFFIX)


def load_answer(answer_path: Union[str, Path]) -> Dict[str, str]:
    """Read a ``{question, answer}`` file written by the pipeline."""
    answer_path = Path(answer_path)
    try:
        data = json.loads(answer_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise DocumentRecordError(f"Cannot read answer file {answer_path}: {e}") from e
    if not isinstance(data, dict) or not data.get("question"):
        raise DocumentRecordError(f"Invalid answer file {answer_path}: missing 'question'")
    if not str(data.get("answer") or "").strip():
        raise NoAnswerError(f"Answer file {answer_path} holds no answer")
    return {"question": data["question"], "answer": data["answer"]}


async def extract_to_csv(
    answer_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    headers: Sequence[str] = CSV_HEADERS,
    model: Optional[str] = None,
) -> Dict[str, Any]:
    """Turn an answer file into a CSV file next to it.

    Returns
    -------
    dict
        ``output_path``, ``row_count`` and ``headers``.
    """
    data = load_answer(answer_path)
    rows = await extract_rows(data["question"], data["answer"], headers=headers, model=model)
    output_path = write_csv(rows, output_path or csv_path_for(answer_path), headers=headers)
    logger.info(f"Wrote {len(rows)} rows to {output_path}")
    return {"output_path": str(output_path), "row_count": len(rows), "headers": list(headers)}
