"""
boarbot.database.store — File-Backed JSON Record Store
=======================================================

One JSON file per record::

    <database_folder>/<user_data_folder>/<user id>.json
    <database_folder>/<guild_data_folder>/<guild id>.json
    <database_folder>/<global_data_folder>/<GlobalFile name>.json

Reads may happen anywhere (read-only reporting tolerates a slightly stale
view).  Every read-modify-write must go through :meth:`DataStore.read_then_write`,
which runs inside the :class:`~boarbot.database.queue.KeyedTaskQueue` entry
keyed on the record, so two handlers can never lose each other's update.

File I/O inside queue work is shipped to a thread with :func:`run_io` so the
event loop is never blocked on disk.

Usage::

    store = DataStore(lambda: cfg.paths, queue)

    def enable(record):
        record["stats"]["general"]["notificationsOn"] = True

    await store.read_then_write(user_record(user_id), enable)
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, ParamSpec, TypeVar

from boarbot.config import PathConfig
from boarbot.database.queue import KeyedTaskQueue
from boarbot.database.records import RecordId, Scope, default_record

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

Record = dict[str, Any]
Mutator = Callable[[Record], Record | None]


class RecordCorruptError(Exception):
    """A record file exists but does not hold a JSON object."""

    def __init__(self, record_id: RecordId, path: Path, reason: str) -> None:
        super().__init__(f"Record {record_id} at {path} is corrupt: {reason}")
        self.record_id = record_id
        self.path = path


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_io(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** filesystem function on a background thread."""
    return await asyncio.to_thread(func, *args, **kwargs)


class DataStore:
    """Read, write and serialize mutations of flat-file JSON records.

    Parameters
    ----------
    paths:
        Either a :class:`PathConfig` or a zero-argument callable returning
        the current one (so a config reload can move the data folders).
    queue:
        The process-wide :class:`KeyedTaskQueue`.
    """

    def __init__(
        self,
        paths: PathConfig | Callable[[], PathConfig],
        queue: KeyedTaskQueue,
    ) -> None:
        self._paths = paths if callable(paths) else (lambda: paths)
        self.queue = queue

    # -------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------
    @property
    def paths(self) -> PathConfig:
        return self._paths()

    def directory(self, scope: Scope) -> Path:
        paths = self.paths
        if scope == Scope.USER:
            return paths.user_dir
        if scope == Scope.GUILD:
            return paths.guild_dir
        return paths.global_dir

    def path_for(self, record_id: RecordId) -> Path:
        return self.directory(record_id.scope) / f"{record_id.name}.json"

    def exists(self, record_id: RecordId) -> bool:
        return self.path_for(record_id).is_file()

    def list_ids(self, scope: Scope) -> list[str]:
        """Return the names of every record on disk in *scope*, sorted."""
        directory = self.directory(scope)
        if not directory.is_dir():
            return []
        return sorted(p.stem for p in directory.glob("*.json"))

    def count(self, scope: Scope) -> int:
        return len(self.list_ids(scope))

    # -------------------------------------------------------------------
    # Synchronous primitives
    # -------------------------------------------------------------------
    def read(self, record_id: RecordId, *, create: bool = True) -> Record:
        """Load *record_id*, falling back to its default shape.

        With *create*, a missing record is persisted with the default shape.
        The creation never overwrites a file that appeared in the meantime.

        Raises
        ------
        RecordCorruptError
            If the file is not UTF-8, holds malformed JSON or holds a
            non-object document.
        """
        path = self.path_for(record_id)
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise RecordCorruptError(record_id, path, str(exc)) from exc
        except FileNotFoundError:
            record = default_record(record_id)
            if create and not self._create_exclusive(path, record):
                # Someone else created it first; theirs wins
                return self.read(record_id, create=False)
            return record

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RecordCorruptError(record_id, path, str(exc)) from exc
        if not isinstance(data, dict):
            raise RecordCorruptError(record_id, path, f"expected object, got {type(data).__name__}")
        return data

    def write(self, record_id: RecordId, record: Record) -> None:
        """Atomically replace the on-disk document of *record_id*."""
        path = self.path_for(record_id)
        tmp_path = self._write_temp(path, record)
        try:
            tmp_path.replace(path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("Wrote record %s", record_id)

    def delete(self, record_id: RecordId) -> None:
        self.path_for(record_id).unlink(missing_ok=True)
        logger.debug("Deleted record %s", record_id)

    # -------------------------------------------------------------------
    # Queue-serialized access
    # -------------------------------------------------------------------
    async def fetch(self, record_id: RecordId) -> Record:
        """Read *record_id* after every queued mutation of it has finished."""
        return await self.queue.enqueue(record_id.key, lambda: run_io(self.read, record_id))

    async def read_then_write(self, record_id: RecordId, mutator: Mutator) -> Record:
        """Read → mutate → write *record_id* as one queued unit of work.

        *mutator* may change the record in place (returning ``None``) or
        return a replacement.  If it raises, nothing is written and the
        exception reaches the caller.  Returns the record as written.
        """

        async def _work() -> Record:
            record = await run_io(self.read, record_id, create=False)
            replacement = mutator(record)
            if replacement is not None:
                record = replacement
            await run_io(self.write, record_id, record)
            return record

        return await self.queue.enqueue(record_id.key, _work)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    @staticmethod
    def _write_temp(path: Path, record: Record) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            try:
                json.dump(record, fh)
                fh.flush()
            except BaseException:
                fh.close()
                Path(fh.name).unlink(missing_ok=True)
                raise
        return Path(fh.name)

    def _create_exclusive(self, path: Path, record: Record) -> bool:
        """Create *path* with *record* unless it already exists."""
        tmp_path = self._write_temp(path, record)
        try:
            os.link(tmp_path, path)
        except FileExistsError:
            return False
        finally:
            tmp_path.unlink(missing_ok=True)
        return True
