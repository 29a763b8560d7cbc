"""Locate and load the ``.env`` file used by the CLI entrypoints."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Mapping, Optional

LOGGER = logging.getLogger(__name__)

EXAMPLE_ENV_FILE = Path(__file__).parent.parent / ".env.example"


def _seed_user_config(
    config_dir: Path,
    config_env_file: Path,
    copy_file: Callable[[Path, Path], str],
    example_file: Path,
) -> bool:
    if not example_file.is_file():
        return False
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        copy_file(example_file, config_env_file)
    except OSError as exc:
        LOGGER.debug("Could not create %s: %s", config_env_file, exc)
        return False
    LOGGER.info(
        "Created %s from .env.example; set JOPLIN_TOKEN there.", config_env_file
    )
    return True


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
    example_file: Path = EXAMPLE_ENV_FILE,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[Path]:
    """Load Joplin connection settings from the first ``.env`` found.

    A ``.env`` in ``cwd`` wins over ``config_env_file`` (normally
    ``~/.config/notegraph/.env``). When neither exists the shipped
    ``.env.example`` seeds ``config_env_file``.

    Returns the loaded file, or None. A ``JOPLIN_TOKEN`` still missing after
    loading is logged as a warning.
    """
    loaded: Optional[Path] = None
    for candidate in (cwd / ".env", config_env_file):
        if candidate.is_file():
            loaded = candidate
            break
    else:
        if _seed_user_config(config_dir, config_env_file, copy_file, example_file):
            loaded = config_env_file

    if loaded is not None:
        load_env(loaded)
        LOGGER.debug("Loaded settings from %s", loaded)

    env = os.environ if environ is None else environ
    if not env.get("JOPLIN_TOKEN"):
        LOGGER.warning(
            "JOPLIN_TOKEN is not set; the Joplin Data API will reject requests."
        )
    return loaded
