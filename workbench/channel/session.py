"""Session manager - one cancellation token per resolution attempt.

Only the current session may publish state or issue further requests. Starting a
new session cancels the previous one; continuations of the old session notice the
token mismatch at their next check and stop without side effects.
"""

import itertools
from dataclasses import dataclass, field

from workbench.channel.schemas import ChannelQuery
from workbench.core.http_session import AbortSignal


@dataclass(eq=False)
class ResolutionSession:
    """One end-to-end attempt to resolve a query."""

    token: int
    query: ChannelQuery
    signal: AbortSignal = field(default_factory=AbortSignal)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        self.signal.abort()


class SessionManager:
    """Issues session tokens and answers whether a token is still current.

    Usage:
        sessions = SessionManager()
        session = sessions.begin(query)
        ...
        if not sessions.is_current(session.token):
            return
    """

    def __init__(self) -> None:
        self._tokens = itertools.count(1)
        self._current: ResolutionSession | None = None

    @property
    def current(self) -> ResolutionSession | None:
        return self._current

    def begin(self, query: ChannelQuery) -> ResolutionSession:
        """Cancel the in-flight session (if any) and make a new one current."""
        self.cancel()
        session = ResolutionSession(token=next(self._tokens), query=query)
        self._current = session
        return session

    def is_current(self, token: int) -> bool:
        current = self._current
        return current is not None and not current.cancelled and current.token == token

    def cancel(self) -> None:
        """Cancel the active session; nothing is current afterwards."""
        if self._current is not None:
            self._current.cancel()
            self._current = None
