"""
Environment handling for ChromoReader.

This module attempts to locate and load environment variables from a
``.env`` file if present.  The search order is:

1) A ``.env`` in the current working directory
2) A path specified by ``CHROMOREADER_ENV_FILE``
3) The first ``.env`` found upwards from the current working directory

Loading never overrides variables that are already set in the process
environment.  Secrets such as ``OPENAI_API_KEY`` are only requested
interactively through :func:`ensure_api_key`, which the command line
interface calls before any model is contacted.  Importing the package
therefore never blocks on a prompt.
"""

import os
from dotenv import load_dotenv, find_dotenv


_cwd_dotenv = os.path.join(os.getcwd(), ".env")
if os.path.isfile(_cwd_dotenv):
    _env_path = _cwd_dotenv
else:
    _env_path = os.getenv("CHROMOREADER_ENV_FILE", "")
    if not _env_path:
        _env_path = find_dotenv(usecwd=True) or ""

if _env_path:
    load_dotenv(_env_path, override=False)


def _set_env(var: str) -> None:
    """Prompt for an environment variable if it is not already set.

    Parameters
    ----------
    var: str
        Name of the environment variable to ensure.
    """
    if var not in os.environ:
        import getpass
        os.environ[var] = getpass.getpass(f"{var}: ")


def ensure_api_key() -> None:
    """Make sure the OpenAI credentials are available before a run starts."""
    _set_env("OPENAI_API_KEY")
