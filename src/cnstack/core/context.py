"""
Run context: cancellation and deadline propagation.

A ``RunContext`` travels with a resolution or bundling run. Plugins check it
before starting expensive work; the orchestrator cancels a shared child
context when fail-fast trips, and every plugin holding that child sees it.

Architecture:
    ::

        background()
            │
            ├── with_timeout(30)          deadline = now + 30
            │       │
            │       └── with_cancel()     inherits the deadline
            │               │
            │               └── cancel()  done() for this node and its children
            │
            └── ...

Examples:
    >>> ctx = RunContext.background().with_timeout(5)
    >>> ctx.done()
    False
    >>> child = ctx.with_cancel()
    >>> child.cancel()
    >>> child.done(), ctx.done()
    (True, False)

Tags:
    cancellation, deadline, timeout, concurrency, cnstack
"""

from __future__ import annotations

import threading
import time
import weakref

from cnstack.core.errors import CnsError, ContextCancelledError, DeadlineExceededError


class RunContext:
    """Cancellation token with an optional absolute deadline (monotonic clock)."""

    def __init__(self, parent: RunContext | None = None, deadline: float | None = None):
        self._parent = parent
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._cause: BaseException | None = None
        self._children: weakref.WeakSet[RunContext] = weakref.WeakSet()

        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline

        if parent is not None:
            parent._attach(self)

    # ── Factories ────────────────────────────────────────────────

    @classmethod
    def background(cls) -> RunContext:
        """Root context: never cancelled, no deadline."""
        return cls()

    def with_cancel(self) -> RunContext:
        """Child context that can be cancelled independently of this one."""
        return RunContext(parent=self)

    def with_timeout(self, seconds: float) -> RunContext:
        """Child context whose deadline is at most ``seconds`` from now."""
        return RunContext(parent=self, deadline=time.monotonic() + seconds)

    # ── State ────────────────────────────────────────────────────

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline, negative once expired, None without one."""
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def cancel(self, cause: BaseException | None = None) -> None:
        """Cancel this context and all of its children. Idempotent."""
        with self._lock:
            if self._event.is_set():
                return
            self._cause = cause
            self._event.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child.cancel(cause)
        if self._parent is not None:
            self._parent._detach(self)

    def done(self) -> bool:
        """True once cancelled or past the deadline."""
        if self._event.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def err(self) -> CnsError | None:
        """The timeout-class error describing why the context is done, if it is."""
        if self._event.is_set():
            return ContextCancelledError("context cancelled", cause=self._cause)
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            return DeadlineExceededError("context deadline exceeded")
        return None

    def check(self, operation: str = "operation") -> None:
        """Raise the context error if the context is done."""
        err = self.err()
        if err is not None:
            raise err.with_context(operation=operation)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled, the deadline passes, or ``timeout`` elapses.

        Returns True if the context is done.
        """
        remaining = self.remaining()
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)
        if timeout is not None and timeout <= 0:
            return self.done()
        self._event.wait(timeout)
        return self.done()

    def _attach(self, child: RunContext) -> None:
        with self._lock:
            cancelled = self._event.is_set()
            if not cancelled:
                self._children.add(child)
        if cancelled:
            child.cancel(self._cause)

    def _detach(self, child: RunContext) -> None:
        with self._lock:
            self._children.discard(child)

    def __repr__(self) -> str:
        return f"RunContext(done={self.done()}, remaining={self.remaining()})"


__all__ = ["RunContext"]
