"""Identity provider backed by the service's /auth routes."""
import logging
from typing import Callable, List, Optional

import httpx

from taskpulse.errors import AuthenticationError
from taskpulse.schemas.auth import TokenResponse
from taskpulse.state.session import Identity, IdentityListener

logger = logging.getLogger(__name__)


class HttpIdentityProvider:
    """
    Sign in against ``POST /auth/sign-in`` and keep the issued bearer token.

    Listeners are awaited in registration order with the new Identity, or
    None after sign-out.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self._token: Optional[str] = None
        self._user: Optional[Identity] = None
        self._listeners: List[IdentityListener] = []

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def current_user(self) -> Optional[Identity]:
        return self._user

    def on_change(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            await listener(self._user)

    async def sign_in(self, email: str, password: str) -> Identity:
        try:
            response = await self.client.post("/auth/sign-in", json={"email": email, "password": password})
        except httpx.HTTPError as e:
            raise AuthenticationError("Unable to reach the sign-in service") from e

        if response.status_code != 200:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = None
            raise AuthenticationError(detail or "Sign-in failed", {"status_code": response.status_code})

        token = TokenResponse.model_validate(response.json())
        self._token = token.token
        self._user = Identity(
            uid=token.user_id,
            email=token.email,
            display_name=token.display_name,
            photo_url=token.photo_url,
        )
        logger.info(f"Signed in as {token.user_id}")
        await self._notify()
        return self._user

    async def sign_out(self) -> None:
        self._token = None
        self._user = None
        await self._notify()
