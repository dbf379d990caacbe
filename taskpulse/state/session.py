"""
Session State

Who is signed in, as seen by the client. Transitions come from identity
provider change notifications and from explicit sign-in / sign-out.
"""
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, Protocol

from taskpulse.errors import TaskPulseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


@dataclass(frozen=True)
class SessionState:
    user: Optional[Identity] = None
    loading: bool = True  # until the provider first reports a session
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


IdentityListener = Callable[[Optional[Identity]], Awaitable[None]]


class IdentityProvider(Protocol):
    """Sign-in backend that reports every session change to its listeners."""

    @property
    def current_user(self) -> Optional[Identity]: ...

    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def sign_out(self) -> None: ...

    def on_change(self, listener: IdentityListener) -> Callable[[], None]: ...


class AuthSession:
    """Holder of the current SessionState."""

    def __init__(self, provider: IdentityProvider):
        self.provider = provider
        self.state = SessionState()

    def set_loading(self, loading: bool) -> None:
        self.state = replace(self.state, loading=loading)

    def set_user(self, user: Identity) -> None:
        self.state = replace(self.state, user=user, loading=False, error=None)

    def clear_user(self) -> None:
        self.state = replace(self.state, user=None, loading=False)

    def set_error(self, message: str) -> None:
        self.state = replace(self.state, error=message, loading=False)

    def clear_error(self) -> None:
        self.state = replace(self.state, error=None)

    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Sign in through the provider.

        The provider's change notification sets the user. On failure the
        message is recorded in ``state.error`` and the error is re-raised.
        """
        self.state = replace(self.state, loading=True, error=None)
        try:
            user = await self.provider.sign_in(email, password)
        except Exception as e:
            message = e.message if isinstance(e, TaskPulseError) else str(e)
            logger.warning(f"Sign-in failed for {email}: {message}")
            self.set_error(message)
            raise
        self.set_loading(False)
        return user

    async def sign_out(self) -> None:
        try:
            await self.provider.sign_out()
        except Exception as e:
            message = e.message if isinstance(e, TaskPulseError) else str(e)
            logger.warning(f"Sign-out failed: {message}")
            self.set_error(message)
            raise
