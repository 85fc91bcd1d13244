"""Environment helpers run before the settings are loaded."""

import os
from pathlib import Path
from typing import List, MutableMapping, Optional

import structlog

logger = structlog.get_logger(__name__)


def load_secret_file_variables(
    environ: Optional[MutableMapping[str, str]] = None,
) -> List[str]:
    """
    Expose Docker-style secret files as plain variables.

    For every `KEY_FILE` variable whose `KEY` is unset, the file content is
    stored in `KEY` (e.g. `DB_MONGO_URI_FILE` fills `DB_MONGO_URI`). Files
    that cannot be read are logged and skipped.

    Returns:
        The variables that were filled in.
    """
    env = os.environ if environ is None else environ
    resolved: List[str] = []
    for key, file_path in list(env.items()):
        if not key.endswith("_FILE") or not file_path:
            continue
        target = key[: -len("_FILE")]
        if env.get(target):
            continue
        try:
            env[target] = Path(file_path).read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("env.secret_file.unreadable", key=key, path=file_path, error=str(exc))
            continue
        resolved.append(target)
    return resolved
