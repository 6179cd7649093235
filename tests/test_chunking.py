import pytest

from chromoreader.errors import ChunkingConfigError
from chromoreader.nodes.chunking import chunk_text, html_to_markdown


def test_default_window_example():
    text = "x" * 12000
    chunks = chunk_text(text, chunk_size=5000, overlap=1000)

    assert [(c.start_char, c.end_char) for c in chunks] == [(0, 5000), (4000, 9000), (8000, 12000)]
    assert [c.chunk_index for c in chunks] == [0, 1, 2]
    assert all(c.total_chunks == 3 for c in chunks)


def test_chunks_cover_text_and_overlap():
    text = "".join(chr(97 + i % 26) for i in range(10321))
    chunks = chunk_text(text, chunk_size=1000, overlap=250)

    assert chunks[0].start_char == 0
    assert chunks[-1].end_char == len(text)
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start_char <= previous.end_char
        assert current.start_char - previous.start_char == 750
    for previous, current in zip(chunks[:-2], chunks[1:-1]):
        assert previous.end_char - current.start_char == 250
    for chunk in chunks:
        assert chunk.content == text[chunk.start_char:chunk.end_char]
    assert chunks[0].total_chunks == len(chunks)


def test_last_window_stops_at_end():
    chunks = chunk_text("y" * 9000, chunk_size=5000, overlap=1000)

    assert [(c.start_char, c.end_char) for c in chunks] == [(0, 5000), (4000, 9000)]


def test_short_text_is_one_chunk():
    chunks = chunk_text("short body", chunk_size=5000, overlap=1000)

    assert len(chunks) == 1
    assert chunks[0].start_char == 0
    assert chunks[0].end_char == 10
    assert chunks[0].total_chunks == 1


def test_empty_text_has_no_chunks():
    assert chunk_text("") == []


@pytest.mark.parametrize(
    "chunk_size, overlap",
    [(1000, 1000), (500, 1000), (0, 0), (1000, -1)],
)
def test_invalid_configuration_is_rejected(chunk_size, overlap):
    with pytest.raises(ChunkingConfigError):
        chunk_text("some text", chunk_size=chunk_size, overlap=overlap)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        chunk_text("some text", chunk_size=10, overlap=10)


def test_html_to_markdown_drops_scripts_and_styles():
    html = (
        "<html><head><style>body { color: red; }</style></head><body>"
        "<h1>Photophysics</h1><script>alert('x')</script>"
        "<p>Quantum yield of <b>1a</b> is 0.42.</p>"
        "<ul><li>toluene</li><li>DCM</li></ul>"
        '<img src="https://example.org/fig1.png" alt="Figure 1">'
        "</body></html>"
    )
    markdown = html_to_markdown(html)

    assert markdown.startswith("# Photophysics")
    assert "**1a**" in markdown
    assert "- toluene" in markdown
    assert "https://example.org/fig1.png" in markdown
    assert "alert" not in markdown
    assert "color: red" not in markdown
