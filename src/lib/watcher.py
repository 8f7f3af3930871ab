"""
Filesystem watcher with debounced change notification

Watches a site directory with watchdog and calls a callback once a burst
of relevant changes has settled:

    save index.vyu ─┐
    save style.css ─┼─ 100ms quiet ─▶ on_change()
    save main.ts  ──┘

The root and every subdirectory present at start() are registered
individually. Directories created afterwards are not observed.
"""

import os
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import WatcherError
from .log import LOG


class Debouncer:
    """
    Collapse bursts of triggers into one callback

    Every trigger() cancels the pending timer and schedules a new one, so
    the callback fires once, ``delay_s`` after the last trigger. The
    cancel-and-reschedule step runs under a dedicated lock.
    """

    def __init__(self, delay_s: float, callback: Callable[[], None]) -> None:
        self.delay_s = delay_s
        self.callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def trigger(self) -> None:
        """(Re)start the quiet period"""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay_s, self.fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Drop a pending callback, if any"""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def fire(self) -> None:
        """Run the callback; failures are logged so later bursts still fire"""
        try:
            self.callback()
        except Exception as e:
            LOG(f"Change callback failed: {e}", level=1, severity="ERROR")


class ChangeEventHandler(FileSystemEventHandler):
    """
    Watchdog handler that forwards relevant file events to a Debouncer

    Create, modify, delete and move events on files whose extension is in
    ``extensions`` trigger the debouncer; everything else is ignored.
    """

    def __init__(self, debouncer: Debouncer, extensions: Iterable[str]) -> None:
        super().__init__()
        self.debouncer = debouncer
        self.extensions = {ext.lower() for ext in extensions}

    def file_isRelevant(self, path: Union[str, bytes]) -> bool:
        """Check whether a path has a watched extension"""
        return Path(os.fsdecode(path)).suffix.lower() in self.extensions

    def event_handle(self, event: FileSystemEvent, path: Union[str, bytes]) -> None:
        if event.is_directory or not self.file_isRelevant(path):
            return
        LOG(f"File changed: {os.fsdecode(path)}", level=2)
        self.debouncer.trigger()

    def on_created(self, event: FileSystemEvent) -> None:
        self.event_handle(event, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self.event_handle(event, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.event_handle(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # an editor's atomic save lands as a move onto the real file name
        self.event_handle(event, event.dest_path)


class Watcher:
    """
    Recursive (at start time) watcher for a site directory

    Usage:
        watcher = Watcher(Path("site"), on_change=broadcaster.broadcast)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        root: Union[str, Path],
        on_change: Callable[[], None],
        debounce_ms: Optional[int] = None,
        extensions: Optional[Iterable[str]] = None,
    ) -> None:
        """
        Args:
            root: Directory to watch
            on_change: Called once per settled burst of relevant changes
            debounce_ms: Quiet period (defaults to settings)
            extensions: Watched extensions (defaults to settings)
        """
        from ..config import appsettings

        self.root = Path(root)
        if debounce_ms is None:
            debounce_ms = appsettings.debounce_ms
        if extensions is None:
            extensions = appsettings.watch_extensions

        self.debouncer = Debouncer(debounce_ms / 1000.0, on_change)
        self.handler = ChangeEventHandler(self.debouncer, extensions)
        self.observer: Optional[Observer] = None
        self.watched: List[Path] = []

    def directories_list(self) -> List[Path]:
        """Root plus every subdirectory currently under it"""
        dirs = [self.root]
        for dirpath, dirnames, _ in os.walk(self.root):
            dirnames.sort()
            dirs.extend(Path(dirpath) / d for d in dirnames)
        return dirs

    def start(self) -> None:
        """
        Register the directory tree and start observing

        Raises:
            WatcherError: If the root is missing or cannot be watched
        """
        if not self.root.is_dir():
            raise WatcherError(f"watch root is not a directory: {self.root}")

        observer = Observer()
        for directory in self.directories_list():
            try:
                observer.schedule(self.handler, str(directory), recursive=False)
            except OSError as e:
                if directory == self.root:
                    raise WatcherError(f"failed to watch {directory}: {e}")
                LOG(f"Watcher error: cannot watch {directory}: {e}", level=1, severity="WARNING")
                continue
            self.watched.append(directory)

        try:
            observer.start()
        except OSError as e:
            raise WatcherError(f"failed to start watcher: {e}")

        self.observer = observer
        LOG(f"Watching {len(self.watched)} directories under {self.root}", level=2)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop observing, join the observer thread and drop any pending callback"""
        observer, self.observer = self.observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=timeout)
        self.debouncer.cancel()
        self.watched = []

    @property
    def is_running(self) -> bool:
        return self.observer is not None and self.observer.is_alive()
