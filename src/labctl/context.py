"""Cancellation and deadline propagation for long-running operations.

A :class:`Context` is handed down through blocking operations (the login
polling loop in particular) so they can stop promptly when the user hits
Ctrl-C or a deadline passes, instead of finishing a blind sleep first.

Contexts form a tree: :meth:`Context.with_timeout` derives a child whose
deadline is the earlier of its own and its parent's, and cancelling a
parent cancels every child. A child that is finished with calls
:meth:`Context.release` so the parent stops holding on to it.

Example::

    ctx = Context()
    poll_ctx = ctx.with_timeout(600)
    while poll_ctx.err() is None:
        ...
        poll_ctx.sleep(2)
    poll_ctx.release()
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

CANCELLED = "context cancelled"
DEADLINE_EXCEEDED = "context deadline exceeded"


class Context:
    """A cancellable scope with an optional deadline.

    Args:
        parent: Context to inherit cancellation, deadline, and clock from.
        timeout: Seconds from now until the deadline. Combined with the
            parent's deadline, the earlier one wins.
        clock: Monotonic clock returning seconds. Defaults to the parent's
            clock, or :func:`time.monotonic` for a root context.
    """

    def __init__(
        self,
        parent: Optional[Context] = None,
        timeout: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if clock is None:
            clock = parent._clock if parent is not None else time.monotonic
        self._clock = clock
        self._parent = parent
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: list[Context] = []
        self._reason: Optional[str] = None

        deadline = None if timeout is None else self._clock() + timeout
        if parent is not None and parent._deadline is not None:
            deadline = parent._deadline if deadline is None else min(deadline, parent._deadline)
        self._deadline = deadline

        if parent is not None:
            parent._attach(self)

    def with_timeout(self, seconds: float) -> Context:
        """Derive a child context that expires *seconds* from now."""
        return type(self)(parent=self, timeout=seconds)

    def cancel(self) -> None:
        """Cancel this context and all of its children. Idempotent."""
        self._cancel(CANCELLED)

    def release(self) -> None:
        """Detach from the parent. Idempotent.

        A released context keeps its own state and deadline but no longer
        sees the parent's cancellation.
        """
        parent, self._parent = self._parent, None
        if parent is not None:
            parent._detach(self)

    @property
    def deadline(self) -> Optional[float]:
        """The deadline on this context's clock, or ``None``."""
        return self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline (never negative), or ``None``."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def err(self) -> Optional[str]:
        """Return why the context is done, or ``None`` while it is still live.

        Returns :data:`CANCELLED` or :data:`DEADLINE_EXCEEDED`.
        """
        if self._reason is not None:
            return self._reason
        if self._deadline is not None and self._clock() >= self._deadline:
            return DEADLINE_EXCEEDED
        return None

    @property
    def cancelled(self) -> bool:
        """Whether :meth:`cancel` was called on this context or an ancestor."""
        return self._reason == CANCELLED

    def sleep(self, seconds: float) -> bool:
        """Wait up to *seconds*, returning early if the context is done.

        The wait never extends past the deadline.

        Returns:
            ``True`` if the full interval elapsed with the context still
            live, ``False`` if it was cancelled or expired.
        """
        if self.err() is not None:
            return False
        remaining = self.remaining()
        timeout = seconds if remaining is None else min(seconds, remaining)
        self._block(timeout)
        return self.err() is None

    def _block(self, timeout: float) -> None:
        """Block for *timeout* seconds or until cancelled."""
        self._event.wait(timeout)

    def _attach(self, child: Context) -> None:
        with self._lock:
            reason = self._reason
            if reason is None:
                self._children.append(child)
        if reason is not None:
            child._cancel(reason)

    def _detach(self, child: Context) -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def _cancel(self, reason: str) -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            children = list(self._children)
        self._event.set()
        for child in children:
            child._cancel(reason)
