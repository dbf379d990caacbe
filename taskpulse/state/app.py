"""Process-wide client state wired to identity changes."""
import logging
from typing import Callable, Optional

from taskpulse.services.task_store import TaskStore
from taskpulse.state.session import AuthSession, Identity, IdentityProvider
from taskpulse.state.tasks import TaskStateContainer

logger = logging.getLogger(__name__)


class AppState:
    """
    Session and task state for one client process.

    ``start()`` subscribes to the identity provider: a signed-in identity
    loads that user's tasks, a sign-out clears them. ``close()`` releases
    the subscription.
    """

    def __init__(self, identity: IdentityProvider, store: TaskStore):
        self.identity = identity
        self.session = AuthSession(identity)
        self.tasks = TaskStateContainer(store)
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.identity.on_change(self._on_identity_change)
        # Report the session that exists right now, as a provider would on subscribe
        await self._on_identity_change(self.identity.current_user)

    async def _on_identity_change(self, user: Optional[Identity]) -> None:
        if user is None:
            logger.info("Signed out, clearing task state")
            self.session.clear_user()
            self.tasks.clear()
            return

        logger.info(f"Signed in as {user.uid}, loading tasks")
        self.session.set_user(user)
        await self.tasks.fetch_all(user.uid)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
