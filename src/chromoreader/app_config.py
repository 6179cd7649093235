"""
Application configuration for ChromoReader.

This module defines a ``Settings`` class using pydantic's ``BaseSettings``
mechanism to manage environment‑configurable options such as the default
output directory, the models used by each stage and the chunking and
exploration limits.

Environment variables are prefixed with ``CHROMOREADER_``.  For example,
``CHROMOREADER_OUTPUT_DIR`` overrides the default output directory and
``CHROMOREADER_EXPLORER_MODEL`` changes the model driving the exploration
loop.  See the attributes of ``Settings`` for supported options.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuration options for ChromoReader.

    Attributes
    ----------
    output_dir: str
        Where batch artifacts (benchmark reports) are written.  Defaults to
        ``"dataset"`` relative to the current working directory.

    model_name: str
        Fallback model for any stage without its own setting.

    temperature: float
        Sampling temperature for non GPT-5 models.  GPT-5 models don't
        support custom temperature settings and ignore it.

    summary_model: str
        Model producing the per-chunk digests. Defaults to ``"gpt-5-mini"``.

    explorer_model: str
        Model driving the exploration loop. Defaults to ``"gpt-5-mini"``.

    vision_model: str
        Vision-capable model behind the figure and table tools.

    extraction_model: str
        Model turning a free-text answer into CSV rows.

    chunk_size, chunk_overlap: int
        Window width and overlap (characters) used by the chunker.

    max_concurrency: int
        Number of concurrent summarization workers.

    max_iterations: int
        Step budget of one exploration session.

    history_window: int
        Number of most recent messages kept when the conversation is
        truncated.  The system instruction is always kept in addition.

    include_metadata: bool
        Whether sessions emit the optional ``metadata`` event.

    log_level: str
        Level passed to ``logging.basicConfig`` by the CLI.
    """

    output_dir: str = "dataset"
    model_name: str = "gpt-5-mini"  # Fallback default
    temperature: float = 0.0  # Note: ignored for GPT-5 models

    # Per-stage model configuration
    summary_model: str = "gpt-5-mini"
    explorer_model: str = "gpt-5-mini"
    vision_model: str = "gpt-5-mini"
    extraction_model: str = "gpt-5"

    chunk_size: int = 5000
    chunk_overlap: int = 1000
    max_concurrency: int = 10

    max_iterations: int = 30
    history_window: int = 20
    include_metadata: bool = False

    log_level: str = "INFO"

    class Config:
        env_prefix = "CHROMOREADER_"


# Singleton instance providing defaults throughout the package
settings = Settings()
