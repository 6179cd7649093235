from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from chromoreader.extractors import get_llm
from chromoreader.vision import OpenAIVision, resolve_image_url


def test_remote_and_data_urls_pass_through():
    assert resolve_image_url("https://cdn.example.org/fig1.png") == "https://cdn.example.org/fig1.png"
    assert resolve_image_url("data:image/png;base64,AAAA") == "data:image/png;base64,AAAA"


def test_local_file_is_inlined(tmp_path):
    image = tmp_path / "fig1.jpg"
    image.write_bytes(b"\xff\xd8\xff")

    assert resolve_image_url(str(image)) == "data:image/jpeg;base64,/9j/"


@pytest.mark.asyncio
async def test_analyze_sends_prompt_and_image():
    client = MagicMock()
    client.responses.create = AsyncMock(return_value=SimpleNamespace(output_text="  Two peaks.  "))
    vision = OpenAIVision(model="gpt-5-mini", client=client)

    text = await vision.analyze("https://example.org/fig.png", "Describe the spectrum")

    assert text == "Two peaks."
    kwargs = client.responses.create.call_args.kwargs
    assert kwargs["model"] == "gpt-5-mini"
    content = kwargs["input"][0]["content"]
    assert content[0] == {"type": "input_text", "text": "Describe the spectrum"}
    assert content[1] == {"type": "input_image", "image_url": "https://example.org/fig.png"}


@pytest.mark.asyncio
async def test_analyze_propagates_transport_errors():
    client = MagicMock()
    client.responses.create = AsyncMock(side_effect=ConnectionError("offline"))

    with pytest.raises(ConnectionError):
        await OpenAIVision(client=client).analyze("https://example.org/fig.png", "?")


def test_get_llm_builds_stage_models(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    assert get_llm("explorer", model="gpt-5-mini").model_name == "gpt-5-mini"
    assert get_llm("summary", model="gpt-4o-mini").temperature == 0.0
