from __future__ import annotations

from typing import Any

from turfease.client import ApiClient, parse_envelope, service_call
from turfease.schemas import Match


class MatchService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    @service_call
    async def create_match(self, data: dict[str, Any]) -> Match:
        payload = await self.api.post("/matches", json=data)
        return parse_envelope(payload, Match).data

    @service_call
    async def list_matches(self, **filters: Any) -> list[Match]:
        params = {k: v for k, v in filters.items() if v}
        payload = await self.api.get("/matches", params=params)
        return parse_envelope(payload, list[Match]).data or []

    @service_call
    async def get_match(self, match_id: str) -> Match:
        payload = await self.api.get(f"/matches/{match_id}")
        return parse_envelope(payload, Match).data

    @service_call
    async def get_by_share_code(self, share_code: str) -> Match:
        payload = await self.api.get(f"/matches/share/{share_code}")
        return parse_envelope(payload, Match).data

    @service_call
    async def update_status(self, match_id: str, status: str) -> Match:
        payload = await self.api.put(f"/matches/{match_id}/status", json={"status": status})
        return parse_envelope(payload, Match).data

    @service_call
    async def update_score(self, match_id: str, team_index: int, score: int) -> Match:
        payload = await self.api.put(
            f"/matches/{match_id}/score", json={"teamIndex": team_index, "score": score}
        )
        return parse_envelope(payload, Match).data

    @service_call
    async def add_live_update(self, match_id: str, update: dict[str, Any]) -> Match:
        payload = await self.api.post(f"/matches/{match_id}/live-update", json=update)
        return parse_envelope(payload, Match).data

    @service_call
    async def update_statistics(self, match_id: str, statistics: dict[str, Any]) -> Match:
        payload = await self.api.put(
            f"/matches/{match_id}/statistics", json={"statistics": statistics}
        )
        return parse_envelope(payload, Match).data

    @service_call
    async def delete_match(self, match_id: str) -> dict[str, Any]:
        return await self.api.delete(f"/matches/{match_id}")
