"""Client-side storage for the anti-CSRF OAuth state token."""

from typing import Mapping, Optional, Protocol

from fastapi import Response


class OAuthStateStore(Protocol):
    """Holds at most one pending state value for the browser session."""

    def save(self, state: str) -> None:
        ...

    def load(self) -> Optional[str]:
        ...

    def clear(self) -> None:
        ...


class InMemoryStateStore:
    """State store backed by a single attribute. Used by scripted clients and tests."""

    def __init__(self, state: Optional[str] = None):
        self._state = state

    def save(self, state: str) -> None:
        self._state = state

    def load(self) -> Optional[str]:
        return self._state

    def clear(self) -> None:
        self._state = None


class CookieStateStore:
    """
    State store backed by a browser cookie.

    Reads come from the incoming request's cookies; writes are recorded and
    applied to the outgoing response with :meth:`apply`.
    """

    def __init__(
        self,
        cookies: Mapping[str, str],
        cookie_name: str = "nylas_oauth_state",
        secure: bool = True,
        max_age: int = 600,
    ):
        self.cookie_name = cookie_name
        self.secure = secure
        self.max_age = max_age
        self._state: Optional[str] = cookies.get(cookie_name) or None
        self._dirty = False

    def save(self, state: str) -> None:
        self._state = state
        self._dirty = True

    def load(self) -> Optional[str]:
        return self._state

    def clear(self) -> None:
        self._state = None
        self._dirty = True

    def apply(self, response: Response) -> None:
        """Write pending changes to the response as Set-Cookie headers."""
        if not self._dirty:
            return
        if self._state is None:
            response.delete_cookie(self.cookie_name, path="/")
        else:
            response.set_cookie(
                self.cookie_name,
                self._state,
                max_age=self.max_age,
                path="/",
                secure=self.secure,
                httponly=True,
                samesite="lax",
            )
