"""
Vision capability used by the figure and table tools.

``OpenAIVision`` sends one image and one instruction to the OpenAI
Responses API and returns the generated text.  Image references may be
``http(s)`` URLs, ``data:`` URLs or paths to local files; local files are
inlined as base64 data URLs.  No retries are attempted: transport errors
propagate to the caller, which decides how to report them.
"""

import base64
import mimetypes
import pathlib
from typing import Optional

import openai

from chromoreader.app_config import settings


def _to_data_url(path: pathlib.Path) -> str:
    """Convert image file to data URL for API calls."""
    mime, _ = mimetypes.guess_type(str(path))
    if mime is None:
        mime = "image/png"
    b64 = base64.b64encode(path.read_bytes()).decode("utf-8")
    return f"data:{mime};base64,{b64}"


def resolve_image_url(image_ref: str) -> str:
    """Return a URL the vision API accepts for ``image_ref``."""
    if image_ref.startswith(("http://", "https://", "data:")):
        return image_ref
    path = pathlib.Path(image_ref).expanduser()
    if path.is_file():
        return _to_data_url(path)
    # Let the API report unreachable references
    return image_ref


class OpenAIVision:
    """Vision-capable text generation backed by the OpenAI Responses API.

    Parameters
    ----------
    model: Optional[str]
        Vision model name.  Defaults to ``settings.vision_model``.
    client: Optional[openai.AsyncOpenAI]
        Client to use.  A new one reading ``OPENAI_API_KEY`` is created when
        omitted.
    """

    def __init__(self, model: Optional[str] = None, client: Optional[openai.AsyncOpenAI] = None) -> None:
        self.model = model or settings.vision_model
        self._client = client

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI()
        return self._client

    async def analyze(self, image_url: str, prompt: str) -> str:
        resp = await self.client.responses.create(
            model=self.model,
            input=[{
                "role": "user",
                "content": [
                    {"type": "input_text", "text": prompt},
                    {"type": "input_image", "image_url": resolve_image_url(image_url)},
                ],
            }],
        )
        text = getattr(resp, "output_text", None)
        if not text:
            text = resp.output[0].content[0].text
        return text.strip()
