from __future__ import annotations

from typing import Any

from turfease.client import ApiClient, ApiEnvelope, parse_envelope, service_call
from turfease.schemas import ApprovalStatus, Turf, User


class AdminService:
    """Owner application approval and turf change review."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    @service_call
    async def list_owners(
        self, page: int = 1, limit: int = 10, status: str = "all"
    ) -> ApiEnvelope:
        """Owners page; ``statusCounts`` comes back as an extra envelope field."""
        payload = await self.api.get(
            "/admin/all-owners", params={"page": page, "limit": limit, "status": status}
        )
        return parse_envelope(payload, list[User])

    @service_call
    async def set_owner_approval(
        self, owner_id: str, status: ApprovalStatus, notes: str = ""
    ) -> dict[str, Any]:
        return await self.api.put(
            f"/admin/owners/{owner_id}/approval",
            json={"status": status.value, "notes": notes},
        )

    @service_call
    async def list_all_turfs(self, page: int = 1, limit: int = 10) -> ApiEnvelope:
        """Turfs page; ``data`` holds ``turfs`` and ``turfsByOwner``."""
        payload = await self.api.get(
            "/turfs/admin/all", params={"page": page, "limit": limit}
        )
        return parse_envelope(payload, dict[str, Any])

    @service_call
    async def pending_turf_changes(self) -> list[Turf]:
        payload = await self.api.get("/admin/turfs/pending-changes")
        return parse_envelope(payload, list[Turf]).data or []

    @service_call
    async def review_turf_changes(
        self, turf_id: str, status: ApprovalStatus, notes: str = ""
    ) -> dict[str, Any]:
        return await self.api.put(
            f"/admin/turfs/{turf_id}/approve-changes",
            json={"status": status.value, "notes": notes},
        )
