"""System prompt for the page assistant.

The packaged ``system.txt`` is used unless a directory named by the
``PAGEWISE_PROMPTS_DIR`` environment variable holds a file of the same
name. The template carries two slots, ``{tools_description}`` and
``{context}``, filled per turn by the agent loop.
"""

import os
from functools import lru_cache
from pathlib import Path

PROMPTS_DIR_ENV = "PAGEWISE_PROMPTS_DIR"
REQUIRED_SLOTS = ("{tools_description}", "{context}")

_PACKAGE_DIR = Path(__file__).parent


def _candidates(filename: str) -> list[Path]:
    paths = []
    override = os.environ.get(PROMPTS_DIR_ENV)
    if override:
        paths.append(Path(override) / filename)
    paths.append(_PACKAGE_DIR / filename)
    return paths


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Read ``<name>.txt``, preferring the override directory.

    Raises:
        FileNotFoundError: If no candidate file exists
    """
    candidates = _candidates(f"{name}.txt")
    for path in candidates:
        if path.is_file():
            return path.read_text(encoding="utf-8")
    searched = ", ".join(str(path) for path in candidates)
    raise FileNotFoundError(f"Prompt '{name}' not found (searched: {searched})")


def get_system_prompt() -> str:
    """Return the system template.

    Raises:
        ValueError: If an override drops one of the per-turn slots
    """
    template = load_prompt("system")
    missing = [slot for slot in REQUIRED_SLOTS if slot not in template]
    if missing:
        raise ValueError(f"System prompt is missing {', '.join(missing)}")
    return template


def clear_cache() -> None:
    """Forget loaded prompts so edited files are read again."""
    load_prompt.cache_clear()


__all__ = [
    "PROMPTS_DIR_ENV",
    "load_prompt",
    "get_system_prompt",
    "clear_cache",
]
