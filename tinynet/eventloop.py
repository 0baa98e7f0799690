"""Waits for events on file descriptors and runs the matching callbacks."""

from __future__ import annotations

import enum
import errno
import os
import select
import socket
import sys
import weakref
from dataclasses import dataclass
from typing import Callable, Optional, Union

from tinynet.errors import UnixError
from tinynet.file_descriptor import FileDescriptor

Callback = Callable[[], None]
Interest = Callable[[], bool]

MAX_CATEGORIES = 64
_BUSY_WAIT_LIMIT = 128
_ALWAYS_REPORTED = select.POLLERR | select.POLLHUP | select.POLLNVAL


def _always() -> bool:
    return True


class Direction(enum.IntEnum):
    """Interest in reading (IN) or writing (OUT) a polled descriptor."""

    IN = select.POLLIN
    OUT = select.POLLOUT


class Result(enum.Enum):
    """Outcome of one call to EventLoop.wait_next_event."""

    SUCCESS = "success"  # a rule was served
    TIMEOUT = "timeout"  # nothing happened before the timeout
    EXIT = "exit"  # no rule is left that is interested in anything


@dataclass(eq=False)
class _BasicRule:
    category_id: int
    interest: Interest
    callback: Callback
    cancel_requested: bool = False


@dataclass(eq=False, kw_only=True)
class _FDRule(_BasicRule):
    fd: FileDescriptor
    direction: Direction
    cancel: Optional[Callback] = None
    error: Optional[Callback] = None

    def service_count(self) -> int:
        """How often the descriptor has been read or written, per the direction."""
        if self.direction is Direction.IN:
            return self.fd.read_count()
        return self.fd.write_count()

    def on_cancel(self) -> None:
        if self.cancel is not None:
            self.cancel()

    def on_error(self) -> None:
        if self.error is not None:
            self.error()


class RuleHandle:
    """A weak handle on a rule, used to cancel it."""

    def __init__(self, rule: _BasicRule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        """Ask the loop to drop the rule; its cancel callback is not called."""
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


class EventLoop:
    """Serves one interested rule per call to wait_next_event."""

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._fd_rules: list[_FDRule] = []
        self._non_fd_rules: list[_BasicRule] = []

    def add_category(self, name: str) -> int:
        """Register a rule category by name; return its id."""
        if len(self._categories) >= MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _category_id(self, category: Union[int, str]) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def _name(self, rule: _BasicRule) -> str:
        return self._categories[rule.category_id]

    def add_rule(
        self,
        category: Union[int, str],
        callback: Callback,
        interest: Interest = _always,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` while ``interest`` holds.

        ``category`` is a category id, or a name for a new category.
        """
        rule = _BasicRule(self._category_id(category), interest, callback)
        self._non_fd_rules.append(rule)
        return RuleHandle(rule)

    def add_fd_rule(
        self,
        category: Union[int, str],
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest = _always,
        cancel: Optional[Callback] = None,
        error: Optional[Callback] = None,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` when ``fd`` is ready in ``direction``."""
        rule = _FDRule(
            self._category_id(category),
            interest,
            callback,
            fd=fd.duplicate(),
            direction=Direction(direction),
            cancel=cancel,
            error=error,
        )
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def _serve_non_fd_rules(self) -> bool:
        for rule in list(self._non_fd_rules):
            if rule.cancel_requested:
                self._non_fd_rules.remove(rule)
                continue

            iterations = 0
            while rule.interest():
                iterations += 1
                if iterations > _BUSY_WAIT_LIMIT:
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        f"is still interested after {iterations} iterations"
                    )
                rule.callback()

            if iterations:
                return True
        return False

    def _report_poll_error(self, rule: _FDRule) -> None:
        name = self._name(rule)
        try:
            sock = socket.socket(fileno=rule.fd.fd_num())
        except OSError as exc:
            if exc.errno == errno.ENOTSOCK:
                print(f'error on polled file descriptor for rule "{name}"', file=sys.stderr)
                return
            raise UnixError("getsockopt", exc.errno or 0) from exc
        try:
            socket_error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            raise UnixError("getsockopt", exc.errno or 0) from exc
        finally:
            sock.detach()
        if socket_error:
            print(
                f'error on polled socket for rule "{name}": {os.strerror(socket_error)}',
                file=sys.stderr,
            )

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve at most one rule, waiting up to ``timeout_ms`` (-1 waits forever)."""
        if self._serve_non_fd_rules():
            return Result.SUCCESS

        entries: list[tuple[_FDRule, int]] = []
        something_to_poll = False
        for rule in list(self._fd_rules):
            if rule.cancel_requested:
                self._fd_rules.remove(rule)
                continue
            if (rule.direction is Direction.IN and rule.fd.eof()) or rule.fd.closed():
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue
            if rule.interest():
                entries.append((rule, int(rule.direction)))
                something_to_poll = True
            else:
                entries.append((rule, 0))  # still polled, so errors are seen

        if not something_to_poll:
            return Result.EXIT

        masks: dict[int, int] = {}
        for rule, events in entries:
            fd_num = rule.fd.fd_num()
            masks[fd_num] = masks.get(fd_num, 0) | events
        poller = select.poll()
        for fd_num, events in masks.items():
            poller.register(fd_num, events)
        try:
            ready = dict(poller.poll(timeout_ms))
        except OSError as exc:
            raise UnixError("poll", exc.errno or 0) from exc
        if not ready:
            return Result.TIMEOUT

        for rule, events in entries:
            revents = ready.get(rule.fd.fd_num(), 0) & (events | _ALWAYS_REPORTED)

            if revents & (select.POLLERR | select.POLLNVAL):
                self._report_poll_error(rule)
                rule.on_error()
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if (
                    count_before == rule.service_count()
                    and not rule.fd.closed()
                    and rule.interest()
                ):
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        "did not read/write fd and is still interested"
                    )
                return Result.SUCCESS

        return Result.SUCCESS

    @property
    def rule_count(self) -> int:
        """Number of rules currently held (cancelled ones until they are dropped)."""
        return len(self._fd_rules) + len(self._non_fd_rules)


__all__ = ["Direction", "EventLoop", "Result", "RuleHandle", "MAX_CATEGORIES"]