"""Run-once guard for lazily built shared values.

A `Once` wraps a factory so the factory runs at most one time for the life
of the process, no matter how many threads ask for the value at the same
moment. Threads that arrive while the factory is running wait on the lock
and then receive the same finished value. A guard that is never called
never runs its factory.
"""

__all__ = ["Once"]

import logging
import threading

logger = logging.getLogger(__name__)


class Once:
    """Call a factory once and hand its result to every caller.

    Args:
        factory: (callable) Zero argument callable producing the value

    If the factory raises, the exception is kept and raised again for
    every later call. The factory is never retried.
    """

    def __init__(self, factory):
        self._factory = factory
        self._lock = threading.Lock()
        self._done = False
        self._value = None
        self._error = None
        self._traceback = None

    @property
    def done(self):
        """(bool) True once the factory has finished, successfully or not."""
        return self._done

    def __call__(self):
        if not self._done:
            with self._lock:
                if not self._done:
                    self._run()
        if self._error is not None:
            # Each raise starts again from the factory's traceback
            raise self._error.with_traceback(self._traceback)
        return self._value

    def _run(self):
        # Only called with the lock held; _done flips last.
        name = getattr(self._factory, "__qualname__", repr(self._factory))
        logger.debug("running once factory %s", name)
        try:
            self._value = self._factory()
        except Exception as e:
            logger.debug("once factory %s failed: %s", name, e)
            self._error = e
            self._traceback = e.__traceback__
        self._done = True

    def __repr__(self):
        state = "done" if self._done else "pending"
        return f"Once({state})"
