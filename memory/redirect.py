"""
Redirect Memory

Carries diagnostic snapshots across a redirect (or a background XHR call)
to the next page that can display them.

The browser holds a single short-lived cookie whose value is the key of
the pending list in a SnapshotStore. Reading consumes the list and expires
the cookie; saving always stores under a fresh key.
"""

import logging
import secrets
from typing import Iterable, List, Optional

from starlette.requests import Request
from starlette.responses import Response

from memory.store import InMemorySnapshotStore, SnapshotStore
from schemas.snapshot import DiagnosticSnapshot


logger = logging.getLogger(__name__)

DEFAULT_COOKIE_NAME = "rs-debugger"


class RedirectMemory:
    """
    One-shot snapshot handoff between two requests of the same client.

    Invariant: at most one unconsumed list per client, because the cookie
    holds one key and every save pops whatever was pending under it.
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        max_age: int = InMemorySnapshotStore.DEFAULT_TTL_SECONDS,
    ):
        self._store = store or InMemorySnapshotStore()
        self._cookie_name = cookie_name
        self._max_age = max_age

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    def load(self, request: Request, *, ajax: bool = False) -> Optional[List[DiagnosticSnapshot]]:
        """
        Consume the list pending for this client.

        AJAX calls never consume: they have nothing to show it on, and the
        next full page load should still see it.

        Returns:
            The carried snapshots (possibly empty) when the cookie was
            consumed, None when nothing was consumed.
        """
        key = request.cookies.get(self._cookie_name)
        if not key or ajax:
            return None
        try:
            return self._store.pop(key)
        except Exception as e:
            logger.warning(f"Failed to load redirect memory: {e}")
            return []

    def save(
        self,
        snapshot: DiagnosticSnapshot,
        request: Request,
        response: Response,
        carried: Iterable[DiagnosticSnapshot] = (),
        *,
        response_started: bool = False,
    ) -> Optional[str]:
        """
        Append `snapshot` to the client's pending list and point the cookie at it.

        Args:
            snapshot: Diagnostics of the current (non-renderable) response
            request: Current request, to find a list still pending
            response: Response that will carry the cookie
            carried: Snapshots already consumed earlier in this request
            response_started: True if headers were already sent

        Returns:
            The new store key, or None if nothing could be saved.
        """
        if response_started:
            return None

        history = list(carried)
        pending_key = request.cookies.get(self._cookie_name)
        try:
            if pending_key:
                # Read fresh: an XHR may have added to it since this request began.
                history.extend(self._store.pop(pending_key))
            history.append(snapshot)

            key = secrets.token_urlsafe(16)
            self._store.put(key, history)
        except Exception as e:
            logger.warning(f"Failed to save redirect memory: {e}")
            return None

        response.set_cookie(
            self._cookie_name,
            key,
            max_age=self._max_age,
            path="/",
            httponly=True,
            samesite="lax",
        )
        return key

    def expire(self, response: Response) -> None:
        """Invalidate the cookie; must precede any set_cookie in the same response."""
        response.delete_cookie(self._cookie_name, path="/")
