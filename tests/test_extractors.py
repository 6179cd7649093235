from unittest.mock import AsyncMock, MagicMock

import pytest

import chromoreader.extractors as extractors
from chromoreader.extractors import SpectroscopyTable, row_extractor


@pytest.mark.asyncio
async def test_row_extractor_binds_a_fresh_model_per_call(monkeypatch):
    models = []
    bound = MagicMock()
    bound.ainvoke = AsyncMock(return_value={"responses": ["table"]})

    def fake_get_llm(agent_type="default", model=None):
        models.append((agent_type, model))
        return f"llm:{model}"

    def fake_create_extractor(llm, tools, tool_choice):
        assert llm == "llm:gpt-4o"
        assert tools == [SpectroscopyTable]
        assert tool_choice == "SpectroscopyTable"
        return bound

    monkeypatch.setattr(extractors, "get_llm", fake_get_llm)
    monkeypatch.setattr(extractors, "create_extractor", fake_create_extractor)

    result = await row_extractor.ainvoke("Extract the rows", model="gpt-4o")

    assert result == {"responses": ["table"]}
    assert models == [("extraction", "gpt-4o")]
    bound.ainvoke.assert_awaited_once_with("Extract the rows")


def test_row_extractor_is_async_only():
    assert not hasattr(row_extractor, "invoke")
