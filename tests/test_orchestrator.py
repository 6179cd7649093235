import json

import pytest
from conftest import FakeSummaryModel, FakeVision, ScriptedChatModel, make_record

from chromoreader import orchestrator
from chromoreader.errors import NoAnswerError
from chromoreader.states import DocumentRecord

HTML = (
    "<html><body><h1>Push-pull chromophores</h1>"
    + "".join(f"<p>Paragraph {i}: compound 1a absorbs at 412 nm in toluene.</p>" for i in range(120))
    + "</body></html>"
)


@pytest.fixture
def rows_stub(monkeypatch):
    calls = []

    async def fake_extract_rows(question, answer, model=None):
        calls.append((question, answer, model))
        return [{"label": "1a", "absorption_max_nm": "412"}]

    monkeypatch.setattr(orchestrator, "extract_rows", fake_extract_rows)
    return calls


def test_output_paths():
    assert orchestrator.record_path_for("d/p.html").name == "p.html.json"
    assert orchestrator.answer_path_for("d/p.html.json").name == "p.html_answer.json"


@pytest.mark.asyncio
async def test_prepare_document_writes_record(tmp_path):
    html_path = tmp_path / "paper.html"
    html_path.write_text(HTML, encoding="utf-8")
    llm = FakeSummaryModel()

    record = await orchestrator.prepare_document(html_path, chunk_size=1000, chunk_overlap=200, llm=llm)

    saved = DocumentRecord.load(tmp_path / "paper.html.json")
    assert saved == record
    assert record.full_content.startswith("# Push-pull chromophores")
    assert len(record.chunks) > 1
    assert len(llm.prompts) == len(record.chunks)
    assert record.chunks[-1].end_char == len(record.full_content)
    assert all(chunk.summary.startswith("digest of") for chunk in record.chunks)


@pytest.mark.asyncio
async def test_run_saves_answer_and_csv(tmp_path, rows_stub):
    record_path = make_record("1a: absorption 412 nm. " * 40).save(tmp_path / "paper.html.json")
    llm = ScriptedChatModel([
        ("", [("search_content", {"searchText": "absorption"})]),
        ("1a absorbs at 412 nm.", []),
    ])

    result = await orchestrator.run(record_path, question="Q?", max_iterations=4, llm=llm, vision=FakeVision())

    answer = json.loads((tmp_path / "paper.html_answer.json").read_text(encoding="utf-8"))
    assert answer == {"question": "Q?", "answer": "1a absorbs at 412 nm."}
    assert rows_stub == [("Q?", "1a absorbs at 412 nm.", None)]
    lines = (tmp_path / "paper.html_extracted.csv").read_text(encoding="utf-8").splitlines()
    assert lines == ["label,absorption_max_nm,emission_max_nm,lifetime_ns,quantum_yield", "1a,412,,,"]
    assert result["steps"] == 2
    assert result["tool_calls"] == 1
    assert result["row_count"] == 1


@pytest.mark.asyncio
async def test_run_rejects_blank_answer(tmp_path, rows_stub):
    record_path = make_record("nothing relevant here").save(tmp_path / "paper.html.json")

    with pytest.raises(NoAnswerError):
        await orchestrator.run(record_path, max_iterations=2, llm=ScriptedChatModel([("", [])]), vision=FakeVision())

    assert not (tmp_path / "paper.html_answer.json").exists()
    assert rows_stub == []


@pytest.mark.asyncio
async def test_run_reports_transport_failure(tmp_path, rows_stub):
    record_path = make_record("text").save(tmp_path / "paper.html.json")
    llm = ScriptedChatModel([RuntimeError("rate limited")])

    with pytest.raises(NoAnswerError, match="rate limited"):
        await orchestrator.run(record_path, max_iterations=2, llm=llm, vision=FakeVision())


@pytest.mark.asyncio
async def test_batch_skips_existing_and_continues_after_failure(tmp_path, rows_stub, monkeypatch):
    make_record("first paper").save(tmp_path / "a.html.json")
    make_record("second paper").save(tmp_path / "b.html.json")
    make_record("third paper").save(tmp_path / "c.html.json")
    (tmp_path / "a.html_extracted.csv").write_text("label\n", encoding="utf-8")

    answers = iter([("", []), ("b answer", [])])

    async def fake_run(record_path, question, **kwargs):
        llm = ScriptedChatModel([next(answers)])
        return await original_run(record_path, question=question, llm=llm, vision=FakeVision(), **kwargs)

    original_run = orchestrator.run
    monkeypatch.setattr(orchestrator, "run", fake_run)

    summary = await orchestrator.run_batch(tmp_path, max_iterations=2)

    assert summary["skipped"] == 1
    assert summary["failed"] == 1
    assert summary["successful"] == 1
    assert (tmp_path / "c.html_extracted.csv").exists()
    assert not (tmp_path / "b.html_extracted.csv").exists()
