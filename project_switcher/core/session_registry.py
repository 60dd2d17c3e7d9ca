"""
SessionRegistry: file-based presence between windows on one machine.

Each window owns exactly one file, ``<sessions_dir>/<session_id>.json``,
and only ever reads the files of its peers. There is no lock, no leader
and no central process:

- start():   write own record immediately, watch the directory, heartbeat
- setters:   debounced rewrite of own record, then a (shorter) debounced
             notification of local listeners
- discovery: read every record, drop malformed ones, skip own session,
             skip and delete records older than ``stale_after_ms``
- dispose(): cancel timers, stop watching, delete own record

A crashed window leaves its record behind; any reader reclaims it once it
has gone ``stale_after_ms`` without a heartbeat. Directory watch events are
hints only: discovery is safe to call at any time.
"""

import asyncio
import json
import logging
import math
import os
import uuid
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from pydantic import ValidationError
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..models.session import OpenWindowSessionRecord, normalize_text
from .badge_color import normalize_badge_color
from .scheduler import CoalescingTimer
from .storage import atomic_write_json
from .store import now_ms

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_MS = 30_000
DEFAULT_STALE_AFTER_MS = 90_000  # three missed heartbeats
DEFAULT_WRITE_DEBOUNCE_MS = 150
DEFAULT_NOTIFY_DEBOUNCE_MS = 80

SESSION_FILE_SUFFIX = ".json"

Listener = Callable[[], None]


class WatchHandle(Protocol):
    def close(self) -> None:
        ...


DirectoryWatchFactory = Callable[[Path, Callable[[], None]], WatchHandle]


class RegistryState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    DISPOSED = "disposed"


class _SessionDirectoryHandler(FileSystemEventHandler):
    """Forwards changes to session files (including atomic renames)."""

    def __init__(self, on_change: Callable[[], None]):
        super().__init__()
        self.on_change = on_change

    # Reads by peers produce open/close events; only content changes count
    RELEVANT_EVENTS = (EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED, EVENT_TYPE_DELETED)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in self.RELEVANT_EVENTS:
            return
        paths = (event.src_path, getattr(event, "dest_path", "") or "")
        if any(str(path).endswith(SESSION_FILE_SUFFIX) for path in paths):
            self.on_change()


class ObserverWatchHandle:
    """Closes a watchdog observer."""

    def __init__(self, observer: Observer):
        self._observer = observer

    def close(self) -> None:
        self._observer.stop()
        self._observer.join(timeout=1.0)


def watch_directory(path: Path, on_change: Callable[[], None]) -> ObserverWatchHandle:
    """Watch ``path`` (non-recursive) with watchdog.

    ``on_change`` runs on the observer thread.

    Raises:
        OSError: If the watch cannot be established
    """
    observer = Observer()
    observer.schedule(_SessionDirectoryHandler(on_change), str(path), recursive=False)
    observer.daemon = True
    observer.start()
    return ObserverWatchHandle(observer)


def collect_open_elsewhere_uris(
    sessions: Sequence[OpenWindowSessionRecord],
    current_session_id: str,
    now: float,
    stale_after_ms: float,
) -> List[str]:
    """Workspace locations open in other live sessions.

    Deduplicated by location, in encounter order; sessions without a
    workspace are skipped.
    """
    result: List[str] = []
    seen = set()

    for session in sessions:
        if session.session_id == current_session_id:
            continue
        if session.is_stale(now, stale_after_ms):
            continue

        workspace_uri = normalize_text(session.workspace_uri)
        if not workspace_uri or workspace_uri in seen:
            continue

        seen.add(workspace_uri)
        result.append(workspace_uri)

    return result


def normalize_heartbeat_ms(heartbeat_ms: Optional[float]) -> float:
    if isinstance(heartbeat_ms, bool) or not isinstance(heartbeat_ms, (int, float)):
        return DEFAULT_HEARTBEAT_MS
    if not math.isfinite(heartbeat_ms) or heartbeat_ms <= 0:
        return DEFAULT_HEARTBEAT_MS
    return heartbeat_ms


class SessionRegistry:
    """Publishes this window's presence and discovers its peers.

    Lifecycle: stopped -> running (heartbeating) -> disposed. Must be started
    from a running asyncio event loop; all timers and watch callbacks are
    serialized on that loop.
    """

    def __init__(
        self,
        sessions_dir: Path,
        session_id: Optional[str] = None,
        stale_after_ms: float = DEFAULT_STALE_AFTER_MS,
        write_debounce_ms: float = DEFAULT_WRITE_DEBOUNCE_MS,
        notify_debounce_ms: float = DEFAULT_NOTIFY_DEBOUNCE_MS,
        now: Optional[Callable[[], float]] = None,
        watch: Optional[DirectoryWatchFactory] = watch_directory,
    ):
        """Initialize registry.

        Args:
            sessions_dir: Shared directory holding one record file per window
            session_id: Identifier for this window (default: random UUID)
            stale_after_ms: Age after which a peer record is considered dead
            write_debounce_ms: Quiet period before rewriting own record
            notify_debounce_ms: Quiet period before notifying listeners
            now: Clock returning epoch milliseconds
            watch: Directory watch factory, None to rely on heartbeats only

        Raises:
            ValueError: If ``session_id`` is blank or not usable as a filename
        """
        if session_id is None:
            session_id = str(uuid.uuid4())
        if not session_id.strip() or os.sep in session_id or session_id in (".", ".."):
            raise ValueError(f"Invalid session id: {session_id!r}")

        self.sessions_dir = Path(sessions_dir)
        self.session_id = session_id
        self.stale_after_ms = stale_after_ms
        self._now = now or now_ms
        self._watch_factory = watch

        self._state = RegistryState.STOPPED
        self._listeners: List[Listener] = []
        self._workspace_uri: Optional[str] = None
        self._focused = False
        self._badge_color: Optional[str] = None
        self._branch: Optional[str] = None
        self._heartbeat_ms = DEFAULT_HEARTBEAT_MS

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._watcher: Optional[WatchHandle] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._write_timer = CoalescingTimer(write_debounce_ms, self._on_write_timer, name="session-write")
        self._notify_timer = CoalescingTimer(notify_debounce_ms, self._emit_did_change, name="session-notify")

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def session_file(self) -> Path:
        return self.sessions_dir / f"{self.session_id}{SESSION_FILE_SUFFIX}"

    @property
    def workspace_uri(self) -> Optional[str]:
        return self._workspace_uri

    @property
    def focused(self) -> bool:
        return self._focused

    @property
    def badge_color(self) -> Optional[str]:
        return self._badge_color

    @property
    def branch(self) -> Optional[str]:
        return self._branch

    def on_did_change(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Lifecycle

    def start(
        self,
        workspace_uri: Optional[str] = None,
        focused: bool = False,
        heartbeat_ms: Optional[float] = None,
    ) -> None:
        """Publish this window and begin watching and heartbeating.

        Raises:
            RuntimeError: If called without a running event loop
        """
        if self._state is RegistryState.DISPOSED:
            logger.warning(f"Session {self.session_id} already disposed, not starting")
            return

        self._loop = asyncio.get_running_loop()
        self._write_timer.set_event_loop(self._loop)
        self._notify_timer.set_event_loop(self._loop)

        self._ensure_sessions_dir()
        self._workspace_uri = normalize_text(workspace_uri)
        self._focused = bool(focused)
        self._heartbeat_ms = normalize_heartbeat_ms(heartbeat_ms)
        self._state = RegistryState.RUNNING

        self._persist_now()
        self._start_watcher()
        self._start_heartbeat()

        logger.info(
            f"Session {self.session_id} started "
            f"(workspace={self._workspace_uri}, heartbeat={self._heartbeat_ms}ms)"
        )
        self._emit_did_change()

    def dispose(self) -> None:
        """Stop publishing and delete own record. Safe to call repeatedly."""
        if self._state is RegistryState.DISPOSED:
            return
        self._state = RegistryState.DISPOSED

        self._write_timer.cancel()
        self._notify_timer.cancel()

        if self._heartbeat_task and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()
        self._heartbeat_task = None

        self._stop_watcher()

        try:
            self.session_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove session file {self.session_file}: {e}")

        logger.info(f"Session {self.session_id} disposed")

    def __enter__(self) -> "SessionRegistry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # Setters

    def set_workspace_uri(self, workspace_uri: Optional[str]) -> None:
        normalized = normalize_text(workspace_uri)
        if normalized == self._workspace_uri:
            return
        self._workspace_uri = normalized
        self._schedule_persist()

    def set_focused(self, focused: bool) -> None:
        focused = bool(focused)
        if focused == self._focused:
            return
        self._focused = focused
        self._schedule_persist()

    def set_badge_color(self, badge_color: Optional[str]) -> None:
        normalized = normalize_badge_color(badge_color)
        if normalized == self._badge_color:
            return
        self._badge_color = normalized
        self._schedule_persist()

    def set_branch(self, branch: Optional[str]) -> None:
        normalized = normalize_text(branch)
        if normalized == self._branch:
            return
        self._branch = normalized
        self._schedule_persist()

    def refresh(self) -> None:
        """Ask listeners to re-read peers (debounced, no write)."""
        if self._state is RegistryState.RUNNING:
            self._notify_timer.schedule()

    # Discovery

    def get_open_elsewhere_uris(self) -> List[str]:
        """Workspace locations open in other live windows, deduplicated."""
        return collect_open_elsewhere_uris(
            sessions=self._read_session_records(),
            current_session_id=self.session_id,
            now=self._now(),
            stale_after_ms=self.stale_after_ms,
        )

    def get_open_elsewhere_snapshots(self) -> List[OpenWindowSessionRecord]:
        """Live peer records (own session excluded), in directory order."""
        return [
            record for record in self._read_session_records()
            if record.session_id != self.session_id
        ]

    def current_record(self) -> OpenWindowSessionRecord:
        """The record this window would publish right now."""
        return OpenWindowSessionRecord(
            session_id=self.session_id,
            workspace_uri=self._workspace_uri,
            focused=self._focused,
            updated_at=self._now(),
            badge_color=self._badge_color,
            branch=self._branch,
        )

    # Internals

    def _schedule_persist(self) -> None:
        if self._state is not RegistryState.RUNNING:
            return
        self._write_timer.schedule()

    def _on_write_timer(self) -> None:
        if self._state is not RegistryState.RUNNING:
            return
        self._persist_now()
        self._notify_timer.schedule()

    def _persist_now(self) -> None:
        self._ensure_sessions_dir()
        try:
            atomic_write_json(self.session_file, self.current_record().to_persisted())
        except OSError as e:
            logger.debug(f"Session write failed, next heartbeat retries: {e}")

    def _ensure_sessions_dir(self) -> None:
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.debug(f"Could not create sessions directory {self.sessions_dir}: {e}")

    def _start_watcher(self) -> None:
        self._stop_watcher()
        if self._watch_factory is None:
            return

        try:
            self._watcher = self._watch_factory(self.sessions_dir, self._on_directory_event)
        except Exception as e:
            logger.warning(f"Directory watch unavailable, using heartbeat-only discovery: {e}")
            self._watcher = None

    def _stop_watcher(self) -> None:
        if not self._watcher:
            return
        try:
            self._watcher.close()
        except Exception as e:
            logger.debug(f"Error closing directory watcher: {e}")
        self._watcher = None

    def _on_directory_event(self) -> None:
        # Called from the watcher thread
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.refresh)
        except RuntimeError:
            logger.debug("Event loop closed, dropping directory event")

    def _start_heartbeat(self) -> None:
        if self._heartbeat_task and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()
        self._heartbeat_task = self._loop.create_task(self._heartbeat())

    async def _heartbeat(self) -> None:
        interval = self._heartbeat_ms / 1000
        while self._state is RegistryState.RUNNING:
            await asyncio.sleep(interval)
            self._schedule_persist()

    def _read_session_records(self) -> List[OpenWindowSessionRecord]:
        try:
            with os.scandir(self.sessions_dir) as entries:
                candidates = [
                    Path(entry.path) for entry in entries
                    if entry.name.endswith(SESSION_FILE_SUFFIX) and _is_file(entry)
                ]
        except OSError:
            return []

        now = self._now()
        records: List[OpenWindowSessionRecord] = []
        stale_paths: List[Path] = []

        for path in candidates:
            record = read_session_record(path)
            if record is None:
                continue
            if record.is_stale(now, self.stale_after_ms):
                stale_paths.append(path)
                continue
            records.append(record)

        for path in stale_paths:
            try:
                path.unlink()
                logger.info(f"Removed stale session record {path.name}")
            except OSError:
                continue

        return records

    def _emit_did_change(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Session registry listener failed: {e}", exc_info=True)


def _is_file(entry: os.DirEntry) -> bool:
    try:
        return entry.is_file()
    except OSError:
        return False


def read_session_record(path: Path) -> Optional[OpenWindowSessionRecord]:
    """Parse one session file; None if unreadable or malformed."""
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug(f"Skipping unreadable session file {path.name}: {e}")
        return None

    if not isinstance(data, dict):
        return None

    try:
        return OpenWindowSessionRecord.model_validate(data)
    except ValidationError:
        logger.debug(f"Skipping malformed session file {path.name}")
        return None
