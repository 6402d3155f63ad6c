"""State publisher - the single choke point for externally visible state."""

from collections.abc import Callable
from typing import Any

from workbench.channel.schemas import ResultState
from workbench.channel.session import SessionManager

StateObserver = Callable[[ResultState], Any]


class StatePublisher:
    """Merges partial patches into session-scoped state and notifies the observer.

    A patch is applied only while the issuing session is current; a stale
    publisher neither mutates its state nor calls the observer.
    """

    def __init__(
        self,
        sessions: SessionManager,
        token: int,
        observer: StateObserver | None = None,
        initial: ResultState | None = None,
    ) -> None:
        self._sessions = sessions
        self._token = token
        self._observer = observer
        self._state = initial or ResultState()

    @property
    def state(self) -> ResultState:
        return self._state

    @property
    def is_current(self) -> bool:
        return self._sessions.is_current(self._token)

    def publish(self, **patch: Any) -> bool:
        """
        Apply a partial patch and deliver the new snapshot.

        Args:
            **patch: ResultState fields to replace

        Returns:
            True if published, False if the session was superseded
        """
        if not self._sessions.is_current(self._token):
            return False
        self._state = self._state.model_copy(update=patch)
        if self._observer is not None:
            self._observer(self._state)
        return True
