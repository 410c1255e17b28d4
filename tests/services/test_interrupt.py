import signal

import pytest

from releasewright.errors import CommandError
from releasewright.services.interrupt import InterruptGuard


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args if args else message)


class FakeGit:
    def __init__(self, error=None):
        self.resets = []
        self.error = error

    def reset(self, paths):
        self.resets.append(list(paths))
        if self.error:
            raise self.error


class FakeSignal:
    def __init__(self):
        self.handlers = {signal.SIGINT: "previous-int", signal.SIGTERM: "previous-term"}

    def signal(self, signum, handler):
        previous = self.handlers.get(signum)
        self.handlers[signum] = handler
        return previous


class FakeAtexit:
    def __init__(self):
        self.registered = []

    def register(self, func):
        self.registered.append(func)

    def unregister(self, func):
        self.registered.remove(func)


def build_guard(git, enabled=True, paths=("package.json",)):
    signals = FakeSignal()
    hooks = FakeAtexit()
    guard = InterruptGuard(git, list(paths), DummyLogger(), enabled=enabled, signal_module=signals, atexit_module=hooks)
    return guard, signals, hooks


def test_guard_reverts_on_exception_and_restores_handlers():
    git = FakeGit()
    guard, signals, hooks = build_guard(git)

    with pytest.raises(RuntimeError):
        with guard:
            assert signals.handlers[signal.SIGINT] == guard._on_signal
            assert hooks.registered == [guard.revert]
            raise RuntimeError("boom")

    assert git.resets == [["package.json"]]
    assert signals.handlers == {signal.SIGINT: "previous-int", signal.SIGTERM: "previous-term"}
    assert hooks.registered == []


def test_guard_keeps_files_once_disarmed():
    git = FakeGit()
    guard, _signals, _hooks = build_guard(git)

    with guard:
        guard.disarm()

    assert git.resets == []


def test_guard_reverts_on_normal_exit_without_commit():
    git = FakeGit()
    guard, _signals, _hooks = build_guard(git)

    with guard:
        pass

    assert git.resets == [["package.json"]]


def test_signal_handler_reverts_once_and_interrupts():
    git = FakeGit()
    guard, _signals, _hooks = build_guard(git)

    with pytest.raises(KeyboardInterrupt):
        with guard:
            guard._on_signal(signal.SIGTERM, None)

    assert git.resets == [["package.json"]]


def test_revert_failures_are_only_logged():
    git = FakeGit(error=CommandError("checkout failed"))
    guard, _signals, _hooks = build_guard(git)

    with guard:
        pass

    assert "Could not revert package.json" in guard.logger.warnings[0]


def test_disabled_guard_installs_nothing():
    git = FakeGit()
    guard, signals, hooks = build_guard(git, enabled=False)

    with pytest.raises(RuntimeError):
        with guard:
            raise RuntimeError("boom")

    assert git.resets == []
    assert signals.handlers[signal.SIGINT] == "previous-int"
    assert hooks.registered == []


def test_guard_without_files_is_disabled():
    guard, _signals, _hooks = build_guard(FakeGit(), paths=())

    assert guard.enabled is False
