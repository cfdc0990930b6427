"""
Exclusive, poisonable access to the authenticated engine.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

from safe_launcher.common.exceptions import EngineUnavailable, ReentrantEngineAccess

logger = logging.getLogger(__name__)

E = TypeVar("E")
R = TypeVar("R")


class EngineGuard(Generic[E]):
    """Serializes every unit of work against a single engine instance.

    Ordinary exceptions raised by a unit of work propagate unchanged and leave
    the guard usable. A unit of work that exits through a ``BaseException``
    that is not an ``Exception`` (interrupt, system exit), or that outlives
    the caller's timeout, leaves the engine in an undefined state: the guard
    is poisoned and every later access fails with EngineUnavailable,
    including callers already waiting for their turn.
    """

    def __init__(self, engine: E) -> None:
        self._engine = engine
        self._cond = threading.Condition()
        self._busy = False
        self._owner: int | None = None
        self._poisoned: str | None = None
        self._closed = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def poison(self, reason: str) -> None:
        """Mark the engine as unusable. Sticky for the guard's lifetime."""
        with self._cond:
            if self._poisoned is None:
                self._poisoned = reason
                logger.error("Engine guard poisoned: %s", reason)
            self._cond.notify_all()

    def ensure_not_held(self) -> None:
        """Raise ReentrantEngineAccess if the calling thread holds the engine."""
        if self._owner == threading.get_ident():
            msg = "engine access is not reentrant"
            raise ReentrantEngineAccess(msg)

    def _check_available(self) -> None:
        if self._closed:
            msg = "session is closed"
            raise EngineUnavailable(msg)
        if self._poisoned is not None:
            msg = f"engine unavailable: {self._poisoned}"
            raise EngineUnavailable(msg)

    def _acquire(self) -> None:
        with self._cond:
            # Poisoning or closing wakes every waiter
            while True:
                self._check_available()
                if not self._busy:
                    break
                self._cond.wait()
            self._busy = True

    def _release(self) -> None:
        with self._cond:
            self._busy = False
            self._owner = None
            self._cond.notify_all()

    def with_engine(
        self, operation: Callable[[E], R], timeout: float | None = None
    ) -> R:
        """Run ``operation(engine)`` while holding exclusive access.

        Args:
            operation: unit of work receiving the engine
            timeout: seconds to wait for the work to finish before treating it
                as abandoned; None waits indefinitely

        Returns:
            Whatever ``operation`` returns.
        """
        self.ensure_not_held()
        self._acquire()
        if timeout is None:
            return self._run_held(operation)
        return self._run_with_timeout(operation, timeout)

    def _run_held(self, operation: Callable[[E], R]) -> R:
        try:
            self._owner = threading.get_ident()
            return operation(self._engine)
        except Exception:
            raise
        except BaseException as err:
            self.poison(f"unit of work aborted with {type(err).__name__}")
            raise
        finally:
            self._release()

    def _run_with_timeout(self, operation: Callable[[E], R], timeout: float) -> R:
        outcome: dict[str, object] = {}
        done = threading.Event()

        def runner() -> None:
            try:
                outcome["result"] = self._run_held(operation)
            except BaseException as err:  # noqa: BLE001
                # Handed back to the waiting caller below
                outcome["error"] = err
            finally:
                done.set()

        try:
            # Daemon so a hung collaborator cannot keep the process alive
            worker = threading.Thread(target=runner, name="engine-guard", daemon=True)
            worker.start()
        except BaseException:
            self._release()
            raise

        if not done.wait(timeout):
            self.poison(f"unit of work abandoned after {timeout}s")
            msg = "engine operation timed out; engine state is undefined"
            raise EngineUnavailable(msg)
        if "error" in outcome:
            raise outcome["error"]  # type: ignore[misc]
        return outcome["result"]  # type: ignore[return-value]

    def close(self) -> None:
        """Refuse all further access and wake any waiting callers."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
