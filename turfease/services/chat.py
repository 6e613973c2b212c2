"""
Chat assistant client.

``send_message`` never raises for backend trouble: after the retry policy
gives up, the caller gets a normal reply whose ``intent`` is ``"error"`` and
whose text explains the problem. Conversation context, topic tracking and
interaction analytics are kept per process; context can be persisted through
the key-value store.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from turfease.client import ApiClient
from turfease.exceptions import ApiError
from turfease.retry import CHAT_RETRY, RetryPolicy
from turfease.schemas import ChatReply
from turfease.storage import CHAT_KEYS, StorageKey

HISTORY_LIMIT = 10
DEFAULT_SUGGESTIONS = ["Browse turfs", "Check prices", "Find nearby", "My bookings"]
ERROR_SUGGESTIONS = ["Try again", "Contact support", "Browse turfs"]

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "booking": ("book", "reserve", "schedule", "appointment"),
    "pricing": ("price", "cost", "rate", "fee", "expensive", "cheap"),
    "location": ("nearby", "location", "address", "close", "distance"),
    "support": ("help", "support", "problem", "issue", "complaint"),
    "account": ("profile", "account", "login", "register", "password"),
    "turf": ("turf", "field", "ground", "facility", "amenities"),
}


class InvalidChatResponse(ValueError):
    pass


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def extract_topics(message: str) -> list[str]:
    lowered = message.lower()
    return [
        topic
        for topic, keywords in TOPIC_KEYWORDS.items()
        if any(keyword in lowered for keyword in keywords)
    ]


def error_message(exc: BaseException) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "The request is taking too long. Please try again."
    if isinstance(exc, httpx.TransportError):
        return (
            "I'm having trouble connecting right now. "
            "Please check your internet connection and try again."
        )
    if isinstance(exc, ApiError) and exc.status_code == 401:
        return "Please log in to continue the conversation."
    if isinstance(exc, ApiError) and exc.status_code == 429:
        return "Too many requests. Please wait a moment before trying again."
    return "I'm experiencing some technical difficulties. Please try again in a moment."


def smart_suggestions(user_type: str = "guest", last_intent: str = "general") -> list[str]:
    suggestions = ["Browse turfs", "Check prices", "Find nearby"]
    if user_type == "owner":
        suggestions += ["View my turfs", "Check bookings", "Analytics dashboard"]
    elif user_type == "player":
        suggestions += ["My bookings", "Book a turf", "Check availability"]

    if last_intent == "booking":
        suggestions += ["Available slots", "Book for tomorrow", "Check my bookings"]
    elif last_intent == "pricing":
        suggestions += ["Compare prices", "Budget options", "Premium turfs"]
    elif last_intent == "location":
        suggestions += ["Use my location", "Different area", "Show on map"]

    return list(dict.fromkeys(suggestions))[:6]


@dataclass
class ChatResponse:
    success: bool
    data: ChatReply


@dataclass
class ConversationContext:
    last_message: str | None = None
    last_response: str | None = None
    last_intent: str | None = None
    message_count: int = 0
    topics: list[str] = field(default_factory=list)
    preferences: dict[str, Any] = field(default_factory=dict)
    last_updated: str | None = None

    def record(self, message: str, reply: ChatReply) -> None:
        self.last_message = message
        self.last_response = reply.reply
        self.last_intent = reply.intent
        self.message_count += 1
        self.last_updated = _now_iso()
        self.topics = list(dict.fromkeys(self.topics + extract_topics(message)))[-10:]

    @classmethod
    def from_saved(cls, saved: dict[str, Any]) -> ConversationContext:
        """Accepts snake_case or camelCase keys; unknown keys are dropped."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in saved.items():
            name = re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()
            if name in known:
                values[name] = value
        return cls(**values)


@dataclass
class ChatAnalytics:
    total_interactions: int = 0
    successful_interactions: int = 0
    failed_interactions: int = 0
    average_response_time: float = 0.0  # ms

    def record(self, success: bool, response_time: float) -> None:
        self.total_interactions += 1
        if success:
            self.successful_interactions += 1
        else:
            self.failed_interactions += 1
        total = self.average_response_time * (self.total_interactions - 1) + response_time
        self.average_response_time = total / self.total_interactions

    @property
    def success_rate(self) -> float:
        if not self.total_interactions:
            return 0.0
        return self.successful_interactions / self.total_interactions * 100


class ChatService:
    def __init__(self, api: ApiClient, retry: RetryPolicy = CHAT_RETRY) -> None:
        self.api = api
        self.retry = retry
        self.contexts: dict[str, ConversationContext] = {}
        self.analytics = ChatAnalytics()

    async def _post_message(self, payload: dict[str, Any]) -> ChatResponse:
        response = await self.api.post("/chat", json=payload, retry=self.retry)
        data = response.get("data") if isinstance(response, dict) else None
        if not data:
            raise InvalidChatResponse("Invalid response format from chat service")
        # Falsy fields fall back to the model defaults
        reply = ChatReply.model_validate({k: v for k, v in data.items() if v})
        if reply.timestamp is None:
            reply.timestamp = _now_iso()
        return ChatResponse(success=response.get("success", True), data=reply)

    async def send_message(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        history: list[dict[str, Any]] | None = None,
    ) -> ChatResponse:
        if not message or not isinstance(message, str):
            raise ValueError("Message is required and must be a string")
        context = context or {}
        payload = {
            "message": message.strip(),
            "context": {
                **context,
                "timestamp": _now_iso(),
                "timezone": str(datetime.now().astimezone().tzinfo),
            },
            "history": list(history or [])[-HISTORY_LIMIT:],
        }

        started = time.monotonic()
        try:
            response = await self._post_message(payload)
        except (ApiError, httpx.TransportError, InvalidChatResponse, ValidationError) as exc:
            logger.error("Chat service error: {!r}", exc)
            self.analytics.record(False, (time.monotonic() - started) * 1000)
            return ChatResponse(
                success=False,
                data=ChatReply(
                    reply=error_message(exc),
                    intent="error",
                    suggestions=list(ERROR_SUGGESTIONS),
                    timestamp=_now_iso(),
                ),
            )

        self.analytics.record(True, (time.monotonic() - started) * 1000)
        user_id = context.get("userId")
        if user_id:
            self.contexts.setdefault(user_id, ConversationContext()).record(
                message, response.data
            )
        return response

    async def suggestions(self, context: dict[str, Any] | None = None) -> list[str]:
        try:
            response = await self.api.get(
                "/chat/suggestions", params={"context": json.dumps(context or {})}
            )
            return (response.get("data") or {}).get("suggestions") or []
        except (ApiError, httpx.TransportError) as exc:
            logger.warning("Failed to fetch suggestions: {}", exc)
            return list(DEFAULT_SUGGESTIONS)

    async def history(self, limit: int = 50) -> list[dict[str, Any]]:
        try:
            response = await self.api.get("/chat/history", params={"limit": limit})
            return (response.get("data") or {}).get("history") or []
        except (ApiError, httpx.TransportError) as exc:
            logger.warning("Failed to fetch conversation history: {}", exc)
            return []

    async def clear_history(self) -> bool:
        try:
            await self.api.delete("/chat/history")
        except (ApiError, httpx.TransportError) as exc:
            logger.warning("Failed to clear conversation history: {}", exc)
            return False
        await self.clear_local_history()
        return True

    async def clear_local_history(self) -> None:
        await self.api.store.delete(*CHAT_KEYS)

    async def execute_action(
        self, action: dict[str, Any], context: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            response = await self.api.post(
                "/chat/action", json={"action": action, "context": context or {}}
            )
            return response.get("data") or {}
        except (ApiError, httpx.TransportError) as exc:
            logger.warning("Failed to execute action: {}", exc)
            return {"success": False, "error": "Action execution failed"}

    def get_context(self, user_id: str) -> ConversationContext | None:
        return self.contexts.get(user_id)

    async def save_context(self, user_id: str) -> None:
        context = self.contexts.get(user_id)
        if context is not None:
            await self.api.store.set(StorageKey.CHAT_CONTEXT, context.__dict__)

    async def load_context(self, user_id: str) -> ConversationContext | None:
        saved = await self.api.store.get(StorageKey.CHAT_CONTEXT)
        if not saved:
            return None
        if not isinstance(saved, dict):
            logger.warning("Ignoring saved chat context of type {}", type(saved).__name__)
            return None
        try:
            context = ConversationContext.from_saved(saved)
        except (TypeError, ValueError):
            logger.opt(exception=True).warning("Ignoring unreadable chat context")
            return None
        self.contexts[user_id] = context
        return context

    async def chat_stats(self) -> dict[str, Any]:
        messages = await self.api.store.get(StorageKey.CHAT_MESSAGES) or []
        return {
            "total_messages": len(messages),
            "user_messages": sum(1 for m in messages if m.get("role") == "user"),
            "assistant_messages": sum(1 for m in messages if m.get("role") == "assistant"),
            "last_message_time": messages[-1].get("ts") if messages else None,
        }
