import os
from pathlib import Path
from typing import List


def _parse_value(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    # unquoted values may carry a trailing comment
    return value.split(" #", 1)[0].strip()


def load_environments(env_path: str = ".env") -> List[str]:
    """Copy ``KEY=VALUE`` lines from ``env_path`` into ``os.environ``.

    Variables already set in the process environment win. Returns the keys
    that were taken from the file.
    """
    env_file = Path(env_path)
    if not env_file.is_file():
        return []

    loaded: List[str] = []
    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, raw_value = line.split("=", 1)
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = _parse_value(raw_value)
        loaded.append(key)
    return loaded
