"""Local filesystem tab-set store.

Stores each user's tab set as a JSON file under the data root with an
optional namespace prefix::

    {data_root}/{prefix}/tab_sets/{user_id}.json

When prefix is None, the path collapses to::

    {data_root}/tab_sets/{user_id}.json

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.  Writes are
atomic (temp file + rename) so a crash mid-write never leaves a truncated
tab set behind.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from functools import partial
from pathlib import Path

from anyio import to_thread

from tabsession.workspace.models.tab import TabSet


class LocalTabSetStore:
    """Local filesystem implementation of the TabSetStore protocol."""

    def __init__(self, data_root: str | Path, prefix: str | None = None) -> None:
        base = Path(data_root)
        if prefix:
            base = base / prefix
        self._base = base / "tab_sets"

    def _path(self, user_id: str) -> Path:
        if not user_id or "/" in user_id or user_id in {".", ".."}:
            msg = f"Invalid user id for local store: {user_id!r}"
            raise ValueError(msg)
        return self._base / f"{user_id}.json"

    async def save(self, user_id: str, tab_set: TabSet) -> None:
        path = self._path(user_id)
        await to_thread.run_sync(partial(_atomic_write, path, tab_set.to_json()))

    async def load(self, user_id: str) -> TabSet | None:
        path = self._path(user_id)
        try:
            raw = await to_thread.run_sync(partial(path.read_text, encoding="utf-8"))
        except FileNotFoundError:
            return None
        return TabSet.model_validate_json(raw)

    async def delete(self, user_id: str) -> None:
        path = self._path(user_id)
        await to_thread.run_sync(partial(path.unlink, missing_ok=True))


# -- Sync helpers (run in thread pool) -----------------------------------------


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    The temp file is created in the same directory so ``os.replace`` is
    atomic on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise
