import os
import shutil
from typing import Optional

from .logger import get_logger

LOGGER = get_logger(__name__)

ENV_HEADER = "# presence-client configuration\n"


def ensure_env_file(env_file: str = ".env", template: Optional[str] = ".env.example") -> None:
    """Ensure `.env` exists; copy from the example or create a minimal file."""
    if os.path.exists(env_file):
        return
    if template and os.path.exists(template):
        shutil.copy2(template, env_file)
        LOGGER.info("Created %s from %s", env_file, template)
        return
    with open(env_file, "w", encoding="utf-8") as f:
        f.write(ENV_HEADER)
    LOGGER.info("Created %s", env_file)


def append_to_env_file(env_file: str, key: str, value: str) -> None:
    """Append or update a KEY="value" entry in `.env`. Idempotent."""
    lines = []
    if os.path.exists(env_file):
        with open(env_file, "r", encoding="utf-8") as f:
            lines = f.readlines()

    entry = f'{key}="{value}"\n'
    for i, line in enumerate(lines):
        if line.strip().startswith(f"{key}="):
            lines[i] = entry
            break
    else:
        # keep the previous last line intact
        if lines and not lines[-1].endswith("\n"):
            lines[-1] = lines[-1] + "\n"
        lines.append(entry)

    with open(env_file, "w", encoding="utf-8") as f:
        f.writelines(lines)
