"""Memory persistence - Save and restore the engine memory as JSON.

The snapshot is stored verbatim; restoring merges defaults into anything
missing so older snapshots keep loading.
"""

import json
from pathlib import Path

from .core import TheoryMemory


def save_memory(memory: TheoryMemory, path: str) -> None:
    """
    Write memory to a JSON file.

    Args:
        memory: Memory returned by the engine or an edit
        path: Output JSON path (parent directories are created)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(memory.to_dict(), indent=2), encoding="utf-8")


def load_memory(path: str) -> TheoryMemory:
    """
    Read memory from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file isn't valid JSON
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Memory snapshot not found: {path}")
    return TheoryMemory.from_dict(json.loads(path.read_text(encoding="utf-8")))
