from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar

from .errors import NotReadyError

T = TypeVar("T")


class ReadinessGate(Generic[T]):
    """Write-once slot for the live session handle.

    The first :meth:`set` wins; later calls leave the stored handle untouched.
    :meth:`get` never waits: it raises :class:`NotReadyError` until a handle
    has been stored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._is_set = False

    @property
    def is_ready(self) -> bool:
        return self._is_set

    def set(self, value: T) -> bool:
        with self._lock:
            if self._is_set:
                return False
            self._value = value
            self._is_set = True
            return True

    def get(self) -> T:
        with self._lock:
            if not self._is_set:
                raise NotReadyError()
            return self._value  # type: ignore[return-value]
