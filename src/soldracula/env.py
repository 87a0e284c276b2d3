# src/soldracula/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

_LOADED = False


def load_dotenv_if_present(dotenv_path: Optional[str] = None) -> bool:
    """Seed os.environ from a .env file, once per process.

    The file is dotenv_path, else SOLDRACULA_DOTENV_PATH, else ./.env.
    Variables that are already set keep their values. Returns True only on
    the call that actually read a file.
    """
    global _LOADED
    if _LOADED:
        return False
    _LOADED = True

    path = Path(dotenv_path or os.getenv("SOLDRACULA_DOTENV_PATH", ".env")).expanduser()
    if not path.is_file():
        return False

    from dotenv import load_dotenv

    load_dotenv(dotenv_path=str(path), override=False)
    return True
