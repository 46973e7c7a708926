"""Debounced rebuild-on-change loop used by ``quiver serve``.

Filesystem notifications arrive on watchdog's observer thread and are pushed
onto a queue. The loop drains that queue on the calling thread and re-arms a
single cancellable timer for every qualifying change, so a burst of edits
collapses into one rebuild that starts once the tree has been quiet for the
debounce window.

The observer watches the source tree recursively. Directories created after
startup are therefore picked up as well, unlike a one-off directory snapshot.
"""

from __future__ import annotations

import os
import queue
import threading
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .errors import QuiverError, WatchError
from .logging import get_logger

DEBOUNCE_SECONDS = 0.5
POLL_SECONDS = 0.5
QUALIFYING_EVENTS = frozenset({EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_DELETED, EVENT_TYPE_MOVED})

logger = get_logger("watch")

_STOP = object()


def is_qualifying(event: FileSystemEvent) -> bool:
    if event.event_type not in QUALIFYING_EVENTS:
        return False
    # a directory "modified" only reflects a change to one of its children
    if event.is_directory and event.event_type == EVENT_TYPE_MODIFIED:
        return False
    return True


class Debouncer:
    """Single-slot timer: every ``trigger`` cancels and replaces the pending one."""

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.delay = delay
        self.callback = callback
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = self._timer_factory(self.delay, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            # superseded timers that were already running when cancelled end here
            if generation != self._generation:
                return
            self._timer = None
        self.callback()


def file_signature(path: str) -> Optional[tuple[int, int]]:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return st.st_mtime_ns, st.st_size


class ChangeHandler(FileSystemEventHandler):
    """Queues qualifying events for the watch loop.

    watchdog reports attribute-only changes (chmod, chown, xattrs) as file
    "modified" events. Those are dropped by comparing each file's mtime and
    size against the last seen values.
    """

    def __init__(self, events: queue.Queue) -> None:
        super().__init__()
        self._events = events
        self._signatures: dict[str, tuple[int, int]] = {}

    def snapshot(self, root: Path) -> None:
        for dirpath, _dirnames, filenames in os.walk(root):
            for name in filenames:
                self._remember(os.path.join(dirpath, name))

    def _remember(self, path: str) -> Optional[tuple[int, int]]:
        signature = file_signature(path)
        if signature is None:
            self._signatures.pop(path, None)
        else:
            self._signatures[path] = signature
        return signature

    def on_any_event(self, event: FileSystemEvent) -> None:
        if not is_qualifying(event):
            return
        if not event.is_directory and not self._track(event):
            return
        self._events.put(event)

    def _track(self, event: FileSystemEvent) -> bool:
        """Update the remembered signature. False for attribute-only changes."""
        src = os.fsdecode(event.src_path)
        if event.event_type == EVENT_TYPE_MOVED:
            self._signatures.pop(src, None)
            self._remember(os.fsdecode(event.dest_path))
            return True
        previous = self._signatures.get(src)
        current = self._remember(src)
        return event.event_type != EVENT_TYPE_MODIFIED or previous is None or current != previous


class WatchLoop:
    def __init__(
        self,
        source_dir: Path,
        rebuild: Callable[[], object],
        *,
        debounce: float = DEBOUNCE_SECONDS,
        stop_event: Optional[threading.Event] = None,
        observer_factory: Callable[[], Observer] = Observer,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.source_dir = source_dir
        self.stop_event = stop_event or threading.Event()
        self.rebuilds = 0
        self._rebuild = rebuild
        self._events: queue.Queue = queue.Queue()
        self._build_lock = threading.Lock()
        self._observer_factory = observer_factory
        self._observer = None
        self._observer_lost = False
        self.debouncer = Debouncer(debounce, self._run_rebuild, timer_factory)
        self.handler = ChangeHandler(self._events)

    def start(self) -> None:
        if not self.source_dir.is_dir():
            raise WatchError(f"source directory does not exist: {self.source_dir}")
        self.handler.snapshot(self.source_dir)
        observer = self._observer_factory()
        try:
            observer.schedule(self.handler, str(self.source_dir), recursive=True)
            observer.start()
        except OSError as exc:
            raise WatchError(f"failed to watch source directory {self.source_dir}: {exc}") from exc
        self._observer = observer
        logger.info("Watching %s for changes", self.source_dir)

    def run(self) -> None:
        """Consume change events until ``stop_event`` is set."""
        while not self.stop_event.is_set():
            try:
                item = self._events.get(timeout=POLL_SECONDS)
            except queue.Empty:
                self._check_observer()
                continue
            if item is _STOP:
                break
            logger.debug("Change: %s %s", item.event_type, item.src_path)
            self.debouncer.trigger()
        if self.debouncer.pending:
            logger.debug("Dropping pending rebuild on shutdown")
        self.debouncer.cancel()

    def stop(self) -> None:
        """Stop watching. A rebuild already in progress is left to finish."""
        self.stop_event.set()
        self._events.put(_STOP)
        self.debouncer.cancel()
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)

    def _check_observer(self) -> None:
        if self._observer is None or self._observer_lost:
            return
        if not self._observer.is_alive():
            self._observer_lost = True
            logger.error("Watcher error: file watcher stopped unexpectedly; changes are no longer tracked")

    def _run_rebuild(self) -> None:
        if self.stop_event.is_set():
            return
        with self._build_lock:
            logger.info("Change detected, rebuilding...")
            try:
                self._rebuild()
            except QuiverError as exc:
                logger.error("Rebuild failed: %s", exc)
            except Exception:
                logger.exception("Rebuild failed")
            finally:
                self.rebuilds += 1
