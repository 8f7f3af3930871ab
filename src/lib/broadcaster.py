"""
Live-reload broadcaster

Keeps one handle per open live-reload connection and fans a reload signal
out to all of them without ever blocking:

    connect()     → ClientHandle (single slot)
    broadcast()   → try to drop a signal into every slot
    disconnect()  → handle removed, no further deliveries

A slot that already holds an undelivered signal drops the new one. The
client reloads the whole page on any signal, so one pending signal is as
good as two.
"""

import queue
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from .log import LOG

RELOAD = "reload"


class ReadWriteLock:
    """
    Lock admitting many concurrent readers or one writer

    Writers wait for active readers to drain; new readers wait while a
    writer is waiting, so a steady stream of broadcasts cannot starve
    connect/disconnect.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ClientHandle:
    """
    Single-slot signal channel for one live-reload connection

    Attributes:
        client_id: Registry key, unique for the broadcaster's lifetime
    """

    def __init__(self, client_id: int) -> None:
        self.client_id = client_id
        self._slot: "queue.Queue[str]" = queue.Queue(maxsize=1)

    def signal_offer(self, payload: str = RELOAD) -> bool:
        """
        Deliver a signal without blocking

        Returns:
            True if the signal was stored, False if the slot was full
        """
        try:
            self._slot.put_nowait(payload)
        except queue.Full:
            return False
        return True

    def signal_wait(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Wait for the next signal

        Returns:
            The payload, or None if nothing arrived within ``timeout``
        """
        try:
            return self._slot.get(timeout=timeout)
        except queue.Empty:
            return None

    @property
    def pending(self) -> bool:
        return not self._slot.empty()


class ReloadBroadcaster:
    """
    Registry of live-reload clients shared by request threads and the watcher

    The registry is the only state shared between concurrently served
    connections and the watcher callback; broadcasts take the read side of
    the lock, connect/disconnect the write side.
    """

    def __init__(self) -> None:
        self._clients: Dict[int, ClientHandle] = {}
        self._lock = ReadWriteLock()
        self._ids = 0
        self._ids_lock = threading.Lock()

    def connect(self) -> ClientHandle:
        """Allocate and register a handle for a new connection"""
        with self._ids_lock:
            self._ids += 1
            handle = ClientHandle(self._ids)
        with self._lock.write_locked():
            self._clients[handle.client_id] = handle
        return handle

    def disconnect(self, handle: ClientHandle) -> None:
        """Remove a handle; unknown handles are ignored"""
        with self._lock.write_locked():
            self._clients.pop(handle.client_id, None)

    def broadcast(self) -> int:
        """
        Offer a reload signal to every registered client

        Returns:
            Number of clients whose slot accepted the signal
        """
        delivered = 0
        with self._lock.read_locked():
            for handle in self._clients.values():
                if handle.signal_offer(RELOAD):
                    delivered += 1
        LOG(f"Reload signalled to {delivered} client(s)", level=2)
        return delivered

    @property
    def clients_count(self) -> int:
        with self._lock.read_locked():
            return len(self._clients)
