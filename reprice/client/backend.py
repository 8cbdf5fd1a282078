import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from reprice.client.store import KeyValueStore

logger = logging.getLogger(__name__)

TOKEN_KEY = "reprice.auth.token"
USER_KEY = "reprice.auth.user"

REQUEST_TIMEOUT = 15.0


class BackendError(Exception):
    """A backend call failed. `status_code` is None for network failures."""

    def __init__(self, status_code: int | None, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    phone: str
    email: str | None = None
    user_type: str = Field(alias="userType")


class AuthSession(BaseModel):
    user: UserProfile
    token: str


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            return detail
    return f"Request failed with status {resp.status_code}"


class BackendClient:
    """Thin client for the reprice REST API that keeps the signed-in user in the store."""

    def __init__(self, http: httpx.AsyncClient, store: KeyValueStore, base_url: str):
        self._http = http
        self._store = store
        self.base_url = base_url.rstrip("/")

    # -- local credentials ----------------------------------------------

    @property
    def token(self) -> str | None:
        return self._store.get(TOKEN_KEY)

    @property
    def current_user(self) -> UserProfile | None:
        raw = self._store.get(USER_KEY)
        if not raw:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable stored user profile")
            self.clear_credentials()
            return None

    @property
    def is_logged_in(self) -> bool:
        return self.token is not None and self.current_user is not None

    def _save_session(self, session: AuthSession) -> None:
        self._store.set(TOKEN_KEY, session.token)
        self._store.set(USER_KEY, session.user.model_dump_json(by_alias=True))

    def clear_credentials(self) -> None:
        self._store.delete(TOKEN_KEY)
        self._store.delete(USER_KEY)

    # -- transport ------------------------------------------------------

    async def _request(self, method: str, path: str, *, auth: bool = False, **kwargs: Any) -> Any:
        headers = kwargs.pop("headers", {})
        if auth:
            token = self.token
            if token is None:
                raise BackendError(401, "Not signed in")
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url}{path}"
        try:
            resp = await self._http.request(
                method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs,
            )
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise BackendError(None, "Backend is unreachable") from e

        if resp.status_code == 401 and auth:
            logger.info("Stored token rejected, clearing credentials")
            self.clear_credentials()
        if not resp.is_success:
            raise BackendError(resp.status_code, _error_message(resp))
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(resp.status_code, "Invalid response from server") from e

    # -- auth -----------------------------------------------------------

    async def signup(
        self,
        name: str,
        phone: str,
        password: str,
        user_type: str = "customer",
        email: str | None = None,
    ) -> AuthSession:
        body = {"name": name, "phone": phone, "password": password, "userType": user_type}
        if email:
            body["email"] = email
        session = AuthSession.model_validate(await self._request("POST", "/auth/signup", json=body))
        self._save_session(session)
        return session

    async def login(self, phone: str, password: str, user_type: str = "customer") -> AuthSession:
        body = {"phone": phone, "password": password, "userType": user_type}
        session = AuthSession.model_validate(await self._request("POST", "/auth/login", json=body))
        self._save_session(session)
        return session

    async def me(self) -> UserProfile:
        user = UserProfile.model_validate(await self._request("GET", "/auth/me", auth=True))
        self._store.set(USER_KEY, user.model_dump_json(by_alias=True))
        return user

    async def logout(self) -> None:
        try:
            if self.token is not None:
                await self._request("POST", "/auth/logout", auth=True)
        except BackendError as e:
            logger.info("Server-side logout failed (%s), clearing local session anyway", e.message)
        finally:
            self.clear_credentials()

    # -- orders ---------------------------------------------------------

    async def create_order(self, order: dict) -> dict:
        data = await self._request("POST", "/orders/create", auth=True, json=order)
        return data["order"]

    async def my_orders(self) -> list[dict]:
        data = await self._request("GET", "/orders/my", auth=True)
        return data.get("orders", [])

    async def assign_order(self, order_id: int) -> dict:
        data = await self._request("PATCH", f"/orders/{order_id}/assign", auth=True)
        return data["order"]

    async def check_serviceability(self, pincode: str) -> bool:
        try:
            data = await self._request("GET", "/orders/serviceability", params={"pincode": pincode})
        except BackendError as e:
            if e.status_code == 422:
                return False
            raise
        return bool(data.get("serviceable"))
