import json
from unittest.mock import AsyncMock

import pandas as pd
import pytest

from chromoreader import csv_export
from chromoreader.errors import DocumentRecordError, NoAnswerError
from chromoreader.extractors import CSV_HEADERS, SpectroscopyRow, SpectroscopyTable


@pytest.fixture
def fake_extractor(monkeypatch):
    table = SpectroscopyTable(rows=[
        SpectroscopyRow(label="1a (toluene)", absorption_max_nm="412", emission_max_nm="498", quantum_yield="0.42"),
        SpectroscopyRow(label="1b, DCM", absorption_max_nm=" 430 ", lifetime_ns="3.1"),
    ])
    extractor = AsyncMock()
    extractor.ainvoke.return_value = {"responses": [table]}
    monkeypatch.setattr(csv_export, "row_extractor", extractor)
    return extractor


@pytest.mark.asyncio
async def test_extract_rows_follows_headers(fake_extractor):
    rows = await csv_export.extract_rows("Question?", "1a absorbs at 412 nm.")

    assert list(rows[0]) == CSV_HEADERS
    assert rows[0]["lifetime_ns"] == ""
    assert rows[1]["absorption_max_nm"] == "430"
    prompt = fake_extractor.ainvoke.call_args.args[0]
    assert "Answer: 1a absorbs at 412 nm." in prompt
    assert "Column Headers: label, absorption_max_nm" in prompt


@pytest.mark.asyncio
async def test_missing_response_gives_empty_rows(monkeypatch):
    extractor = AsyncMock()
    extractor.ainvoke.return_value = {"responses": []}
    monkeypatch.setattr(csv_export, "row_extractor", extractor)

    assert await csv_export.extract_rows("Q", "A") == []


@pytest.mark.asyncio
async def test_extract_to_csv_writes_next_to_answer(tmp_path, fake_extractor):
    answer_path = tmp_path / "10.1021:cm400945h.html_answer.json"
    answer_path.write_text(json.dumps({"question": "Q", "answer": "A"}), encoding="utf-8")

    result = await csv_export.extract_to_csv(answer_path)

    csv_path = tmp_path / "10.1021:cm400945h.html_extracted.csv"
    assert result["output_path"] == str(csv_path)
    assert result["row_count"] == 2
    lines = csv_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "label,absorption_max_nm,emission_max_nm,lifetime_ns,quantum_yield"
    assert lines[1] == "1a (toluene),412,498,,0.42"
    assert lines[2] == '"1b, DCM",430,,3.1,'


def test_empty_table_still_has_header(tmp_path):
    path = csv_export.write_csv([], tmp_path / "empty.csv")

    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert list(frame.columns) == CSV_HEADERS
    assert frame.empty


def test_invalid_answer_files(tmp_path):
    missing_question = tmp_path / "a_answer.json"
    missing_question.write_text(json.dumps({"answer": "x"}), encoding="utf-8")
    blank_answer = tmp_path / "b_answer.json"
    blank_answer.write_text(json.dumps({"question": "Q", "answer": "  "}), encoding="utf-8")

    with pytest.raises(DocumentRecordError):
        csv_export.load_answer(missing_question)
    with pytest.raises(NoAnswerError):
        csv_export.load_answer(blank_answer)


def test_csv_path_for():
    assert csv_export.csv_path_for("data/p.html_answer.json").name == "p.html_extracted.csv"
