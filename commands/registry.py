"""
Command Registry
----------------
Durable storage of all command definitions in a single JSON file.

Design:
- Every mutation is load-modify-persist under the writer lock
- The writer lock is shared by every registry on the same file in this
  process, plus an advisory lock on `<file>.lock` for other processes
- Writes go to a temp file in the same directory, then os.replace()
- Missing file reads as an empty registry
- Unparseable file raises CorruptDataError and is never overwritten by a read

Usage:
    from commands.registry import CommandRegistry

    registry = CommandRegistry("/tmp/commands.json")
    cmd = registry.create(CreateCommandRequest(name="List", command="ls"))
    registry.record_usage(cmd.id, datetime.now(timezone.utc))
"""

from contextlib import ExitStack, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union
import copy
import json
import os
import tempfile
import threading
import uuid

if os.name == "nt":
    import msvcrt
else:
    import fcntl

from core.errors import CorruptDataError, NotFoundError, StorageError
from infra.config import default_storage_path
from infra.logging import get_logger

from .model import (
    Command,
    CreateCommandRequest,
    UpdateCommandRequest,
    dedupe_tags,
    validate,
)

# One writer lock per resolved registry file
_path_locks: Dict[str, threading.RLock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _path_locks_guard:
        return _path_locks.setdefault(key, threading.RLock())


@contextmanager
def file_lock(path: Path) -> Iterator[None]:
    """Exclusive advisory lock on `path`, held across processes."""
    with open(path, "a+b") as handle:
        if os.name == "nt":
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
        else:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            if os.name == "nt":
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CommandRegistry:
    """
    Registry of command definitions backed by one JSON document.

    The registry is the sole owner and writer of the backing file.
    Returned commands are fresh copies; mutating them changes nothing
    until they go back through update().
    """

    def __init__(
        self,
        storage_path: Optional[Union[str, Path]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._path = Path(storage_path) if storage_path else default_storage_path()
        self._clock = clock or utc_now
        # Shared with every registry on the same file
        self._lock = _lock_for(self._path)
        self._logger = get_logger("commands.registry")

    @property
    def storage_path(self) -> Path:
        """Return the backing file path."""
        return self._path

    # Reads

    def list(self) -> List[Command]:
        """All commands in creation order."""
        return self._load_all()

    def get(self, command_id: str) -> Command:
        for command in self._load_all():
            if command.id == command_id:
                return command
        raise NotFoundError(command_id)

    def search_by_name(self, query: str) -> List[Command]:
        """Case-insensitive substring match on name, in list order."""
        needle = (query or "").lower()
        return [cmd for cmd in self._load_all() if needle in cmd.name.lower()]

    def search_by_tags(self, tags: List[str]) -> List[Command]:
        """Commands carrying any of the given tags, in list order."""
        wanted = set(tags)
        return [cmd for cmd in self._load_all() if wanted.intersection(cmd.tags)]

    # Mutations

    def create(self, request: CreateCommandRequest) -> Command:
        """Validate, assign identity and timestamps, persist."""
        now = self._clock()
        command = Command(
            id=str(uuid.uuid4()),
            name=request.name,
            command=request.command,
            args=list(request.args),
            description=request.description,
            working_directory=request.working_directory,
            environment_variables=copy.deepcopy(request.environment_variables),
            tags=dedupe_tags(list(request.tags)),
            created_at=now,
            updated_at=now,
            last_used_at=None,
            use_count=0,
            parameters=copy.deepcopy(request.parameters),
            mise_enabled=bool(request.mise_enabled),
        )
        validate(command)

        with self._writer():
            commands = self._load_all()
            existing_ids = {cmd.id for cmd in commands}
            while command.id in existing_ids:
                command.id = str(uuid.uuid4())
            commands.append(command)
            self._save_all(commands)

        self._logger.info(f"Created command {command.id} ({command.name})")
        return copy.deepcopy(command)

    def update(self, command_id: str, request: UpdateCommandRequest) -> Command:
        """Merge only the supplied fields over the stored command."""
        with self._writer():
            commands = self._load_all()
            index = self._index_of(commands, command_id)

            merged = copy.deepcopy(commands[index])
            for name, value in request.supplied_fields().items():
                setattr(merged, name, copy.deepcopy(value))
            merged.tags = dedupe_tags(merged.tags)
            merged.updated_at = max(self._clock(), merged.created_at)
            validate(merged)

            commands[index] = merged
            self._save_all(commands)

        self._logger.info(f"Updated command {command_id}")
        return copy.deepcopy(merged)

    def delete(self, command_id: str) -> None:
        with self._writer():
            commands = self._load_all()
            index = self._index_of(commands, command_id)
            del commands[index]
            self._save_all(commands)

        self._logger.info(f"Deleted command {command_id}")

    def record_usage(self, command_id: str, timestamp: datetime) -> Command:
        """Increment use_count and stamp last_used_at."""
        with self._writer():
            commands = self._load_all()
            index = self._index_of(commands, command_id)
            command = commands[index]
            command.use_count += 1
            command.last_used_at = timestamp
            self._save_all(commands)

        self._logger.debug(f"Recorded use #{command.use_count} of {command_id}")
        return copy.deepcopy(command)

    def __len__(self) -> int:
        return len(self._load_all())

    def __contains__(self, command_id: str) -> bool:
        return any(cmd.id == command_id for cmd in self._load_all())

    # Persistence

    def _lock_path(self) -> Path:
        return self._path.with_name(self._path.name + ".lock")

    @contextmanager
    def _writer(self) -> Iterator[None]:
        """Hold the in-process and cross-process writer locks."""
        with self._lock, ExitStack() as stack:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                stack.enter_context(file_lock(self._lock_path()))
            except OSError as e:
                raise StorageError(
                    f"Failed to lock {self._lock_path()}: {e}", {"path": str(self._path)}
                )
            yield

    @staticmethod
    def _index_of(commands: List[Command], command_id: str) -> int:
        for index, command in enumerate(commands):
            if command.id == command_id:
                return index
        raise NotFoundError(command_id)

    def _load_all(self) -> List[Command]:
        if not self._path.exists():
            return []

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}", {"path": str(self._path)})

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDataError(str(self._path), str(e))

        if not isinstance(data, list):
            raise CorruptDataError(
                str(self._path), f"expected a JSON array, got {type(data).__name__}"
            )

        commands = []
        for position, entry in enumerate(data):
            try:
                commands.append(Command.from_dict(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise CorruptDataError(
                    str(self._path), f"entry {position} is malformed: {e!r}"
                )
        return commands

    def _save_all(self, commands: List[Command]) -> None:
        content = json.dumps([cmd.to_dict() for cmd in commands], indent=2) + "\n"
        temp_path: Optional[str] = None

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=str(self._path.parent),
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                temp_path = f.name
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self._path)
            temp_path = None
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}", {"path": str(self._path)})
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)
