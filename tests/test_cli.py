import pytest

import chromoreader.__main__ as cli
from chromoreader.errors import NoAnswerError


@pytest.fixture
def offline(monkeypatch):
    monkeypatch.setattr(cli, "ensure_api_key", lambda: None)


def test_explore_reports_a_missing_answer_without_traceback(offline, monkeypatch, capsys):
    async def no_answer(record_path, **kwargs):
        raise NoAnswerError(f"Exploration of {record_path} produced no answer")

    monkeypatch.setattr(cli, "run", no_answer)

    assert cli.main(["explore", "paper.html.json"]) == 1
    out = capsys.readouterr().out
    assert "Error exploring paper.html.json" in out
    assert "produced no answer" in out


def test_explore_prints_written_outputs(offline, monkeypatch, capsys):
    seen = {}

    async def answered(record_path, **kwargs):
        seen.update(kwargs, record_path=record_path)
        return {"steps": 3, "tool_calls": 2, "answer_path": "paper.html_answer.json",
                "csv_path": None, "row_count": 0}

    monkeypatch.setattr(cli, "run", answered)

    assert cli.main(["explore", "paper.html.json", "--max-iterations", "4", "--no-csv"]) == 0
    assert seen["record_path"] == "paper.html.json"
    assert seen["max_iterations"] == 4
    assert seen["extract_csv"] is False
    assert "Finished exploration in 3 steps (2 tool calls)" in capsys.readouterr().out
