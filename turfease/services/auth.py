from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from turfease.client import ApiClient, parse_data, parse_envelope, service_call
from turfease.exceptions import ApiError, ServiceError
from turfease.schemas import AuthResult, User
from turfease.storage import StorageKey, clear_on_logout


class AuthService:
    """Account, login and OTP flows. Successful logins persist the token."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def _store_login(self, payload: Any) -> AuthResult:
        result = parse_data(payload, AuthResult)
        if result.token:
            await self.api.store.set(StorageKey.TOKEN, result.token)
        return result

    @service_call
    async def login(self, email: str, password: str) -> AuthResult:
        payload = await self.api.post(
            "/auth/login", json={"email": email, "password": password}
        )
        return await self._store_login(payload)

    @service_call
    async def register(self, user_data: dict[str, Any]) -> AuthResult:
        logger.debug("Registering user: email={}", user_data.get("email"))
        payload = await self.api.post("/auth/register", json=user_data)
        return parse_data(payload, AuthResult)

    @service_call
    async def firebase_auth(self, firebase_token: str) -> AuthResult:
        payload = await self.api.post(
            "/auth/firebase", json={"firebaseToken": firebase_token}
        )
        if not isinstance(payload, dict):
            raise ServiceError("Firebase authentication failed")
        if not payload.get("success"):
            raise ServiceError(payload.get("message") or "Firebase authentication failed")
        return await self._store_login(payload)

    @service_call
    async def me(self) -> User:
        payload = await self.api.get("/auth/me")
        if isinstance(payload, dict) and "user" in payload:
            return parse_data(payload["user"], User)
        return parse_envelope(payload, User).data

    @service_call
    async def update_profile(self, profile: dict[str, Any]) -> User:
        payload = await self.api.put("/auth/profile", json=profile)
        if isinstance(payload, dict) and "user" in payload:
            return parse_data(payload["user"], User)
        return parse_envelope(payload, User).data

    async def logout(self) -> None:
        """Tell the backend, then drop every logout-scoped key even if that failed."""
        try:
            await self.api.post("/auth/logout")
        except (ApiError, httpx.TransportError) as exc:
            logger.warning("Server logout failed: {}", exc)
        finally:
            await clear_on_logout(self.api.store)

    @service_call
    async def forgot_password(self, email: str) -> dict[str, Any]:
        return await self.api.post("/auth/forgotpassword", json={"email": email})

    @service_call
    async def reset_password(self, reset_token: str, password: str) -> dict[str, Any]:
        return await self.api.put(
            f"/auth/resetpassword/{reset_token}", json={"password": password}
        )

    @service_call
    async def resend_verification(self, email: str) -> dict[str, Any]:
        return await self.api.post("/auth/resend-verification", json={"email": email})

    @service_call
    async def verify_otp(self, user_id: str, otp: str) -> AuthResult:
        payload = await self.api.post(
            "/auth/verify-otp", json={"userId": user_id, "otp": otp}
        )
        return await self._store_login(payload)

    @service_call
    async def resend_otp(self, user_id: str) -> dict[str, Any]:
        return await self.api.post("/auth/resend-otp", json={"userId": user_id})

    @service_call
    async def send_login_otp(self, email: str) -> dict[str, Any]:
        return await self.api.post("/auth/send-login-otp", json={"email": email})

    @service_call
    async def login_with_otp(self, email: str, otp: str) -> AuthResult:
        payload = await self.api.post(
            "/auth/login-otp", json={"email": email, "otp": otp}
        )
        return await self._store_login(payload)

    async def check_email_exists(self, email: str) -> dict[str, Any]:
        """Raw call; ``validation.EmailAvailabilityChecker`` handles failures."""
        return await self.api.post("/auth/check-email", json={"email": email})

    @service_call
    async def get_user_profile(self) -> User:
        payload = await self.api.get("/users/profile")
        return parse_envelope(payload, User).data

    @service_call
    async def update_user_profile(self, profile: dict[str, Any]) -> User:
        payload = await self.api.put("/users/profile", json=profile)
        return parse_envelope(payload, User).data
