"""Reader/writer lock guarding the live vault key."""
import threading
from contextlib import contextmanager
from typing import Iterator


class RWLock:
    """Many concurrent readers or one writer.

    Waiting writers block new readers, so a steady stream of encrypt/decrypt
    calls cannot starve a lock() or a password change.

    The lock is not reentrant. A thread that already holds it, in either
    mode, gets a RuntimeError instead of a deadlock when it tries again.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = set()
        self._writer = None
        self._waiting_writers = 0

    def _check_owner(self, me: int) -> None:
        if me == self._writer or me in self._readers:
            raise RuntimeError("RWLock is not reentrant")

    def acquire_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            self._check_owner(me)
            while self._writer is not None or self._waiting_writers:
                self._cond.wait()
            self._readers.add(me)

    def release_read(self) -> None:
        with self._cond:
            self._readers.discard(threading.get_ident())
            if not self._readers:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            self._check_owner(me)
            self._waiting_writers += 1
            try:
                while self._writer is not None or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = me

    def release_write(self) -> None:
        with self._cond:
            self._writer = None
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
