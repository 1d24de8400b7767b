"""Remote callbacks carrying credentials, cancellation and deadlines."""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import pygit2

from engine.errors import OperationCancelledError, TransportError

logger = logging.getLogger(__name__)

TOKEN_USERNAME = "x-access-token"


class EnsureCallbacks(pygit2.RemoteCallbacks):
    """Remote callbacks for one network operation.

    Progress callbacks raise ``OperationCancelledError`` once the cancel event
    is set or the deadline has passed, which makes libgit2 abort the transfer.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__()
        self.token = token
        self.cancel = cancel
        self.deadline = time.monotonic() + timeout if timeout else None
        self._credential_attempts = 0

    def check(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise OperationCancelledError("operation cancelled")
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise OperationCancelledError("network deadline exceeded")

    def credentials(self, url, username_from_url, allowed_types):
        self.check()
        if self.token is None:
            raise TransportError(f"authentication required for {url}", operation="authenticate")
        self._credential_attempts += 1
        if self._credential_attempts > 1:
            # libgit2 asks again after a rejected token
            raise TransportError(f"authentication failed for {url}", operation="authenticate")
        return pygit2.UserPass(TOKEN_USERNAME, self.token)

    def sideband_progress(self, string: str) -> None:
        self.check()

    def transfer_progress(self, stats) -> None:
        self.check()

    def push_transfer_progress(self, objects_pushed, total_objects, bytes_pushed) -> None:
        self.check()


CallbacksFactory = Callable[[], pygit2.RemoteCallbacks]


def callbacks_factory(
    token: Optional[str] = None,
    cancel: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> CallbacksFactory:
    """Build fresh callbacks per network operation so deadlines restart."""

    def factory() -> pygit2.RemoteCallbacks:
        return EnsureCallbacks(token=token, cancel=cancel, timeout=timeout)

    return factory
