"""Scoped rollback of bumped files while they are not yet committed."""

import atexit
import signal
from typing import Dict, Iterable, List


class InterruptGuard:
    """Reverts bumped files when the bump-to-commit window is left abnormally.

    While entered, SIGINT/SIGTERM handlers and an ``atexit`` hook are
    installed. Leaving the window reverts the files unless ``disarm()`` was
    called once they were committed. Revert failures are only logged.
    """

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self, git, paths: Iterable[str], logger, enabled: bool = True, signal_module=signal, atexit_module=atexit):
        self.git = git
        self.paths: List[str] = [path for path in paths or [] if path]
        self.logger = logger
        self.enabled = enabled and bool(self.paths)
        self.signal = signal_module
        self.atexit = atexit_module
        self.disarmed = False
        self.reverted = False
        self._previous: Dict[int, object] = {}

    def __enter__(self) -> "InterruptGuard":
        if not self.enabled:
            return self
        for signum in self.SIGNALS:
            try:
                self._previous[signum] = self.signal.signal(signum, self._on_signal)
            except ValueError:
                self.logger.debug("Cannot install handler for signal %s outside the main thread.", signum)
        self.atexit.register(self.revert)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if not self.enabled:
            return False
        for signum, handler in self._previous.items():
            self.signal.signal(signum, handler)
        self._previous.clear()
        self.atexit.unregister(self.revert)
        self.revert()
        return False

    def disarm(self):
        self.disarmed = True

    def revert(self):
        if not self.enabled or self.disarmed or self.reverted:
            return
        self.reverted = True
        try:
            self.git.reset(self.paths)
            self.logger.info("Reverted %s", ", ".join(self.paths))
        except Exception as exc:
            self.logger.warning("Could not revert %s: %s", ", ".join(self.paths), exc)

    def _on_signal(self, signum, _frame):
        self.logger.warning("Interrupted (signal %s), reverting bumped files.", signum)
        self.revert()
        raise KeyboardInterrupt()
