"""
Client-side form validation: field patterns, rule-driven field/form checks,
password strength, and the debounced email-availability lookup used while
a user types their address during registration.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from turfease.exceptions import ApiError

VALIDATION_PATTERNS: dict[str, re.Pattern[str]] = {
    "email": re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
    "phone": re.compile(r"^[6-9]\d{9}$"),
    "password": re.compile(
        r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
    ),
    "name": re.compile(r"^[a-zA-Z\s]{2,50}$"),
    "business_name": re.compile(r"^[a-zA-Z0-9\s&.-]{2,100}$"),
    "pincode": re.compile(r"^[1-9][0-9]{5}$"),
}

VALIDATION_MESSAGES: dict[str, Any] = {
    "required": lambda field: f"{field} is required",
    "email": "Please enter a valid email address",
    "email_exists": "This email is already registered",
    "phone": "Please enter a valid 10-digit mobile number",
    "password": (
        "Password must be at least 8 characters with uppercase, lowercase, "
        "number and special character"
    ),
    "password_match": "Passwords do not match",
    "name": "Name must be 2-50 characters and contain only letters",
    "business_name": "Business name must be 2-100 characters",
    "pincode": "Please enter a valid 6-digit pincode",
    "min_length": lambda field, n: f"{field} must be at least {n} characters",
    "max_length": lambda field, n: f"{field} must not exceed {n} characters",
    "numeric": lambda field: f"{field} must be a number",
    "positive": lambda field: f"{field} must be a positive number",
}


def _matches(pattern: str, value: str | None) -> bool:
    # Empty optional values pass; use the "required" rule to forbid them
    if not value:
        return True
    return bool(VALIDATION_PATTERNS[pattern].fullmatch(value))


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_required(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None


def is_email(value: str | None) -> bool:
    return _matches("email", value)


def is_phone(value: str | None) -> bool:
    if not value:
        return True
    return _matches("phone", re.sub(r"\s+", "", value))


def is_strong_password(value: str | None) -> bool:
    return _matches("password", value)


def is_name(value: str | None) -> bool:
    return _matches("name", value)


def is_business_name(value: str | None) -> bool:
    return _matches("business_name", value)


def is_pincode(value: str | None) -> bool:
    return _matches("pincode", value)


def is_numeric(value: Any) -> bool:
    if not value:
        return True
    return _to_float(value) is not None


def is_positive(value: Any) -> bool:
    if not value:
        return True
    number = _to_float(value)
    return number is not None and number > 0


@dataclass
class FieldResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_field(
    name: str,
    value: Any,
    rules: list[dict[str, Any]],
    additional: Mapping[str, Any] | None = None,
) -> FieldResult:
    """
    Apply ``rules`` (``{"type": ..., "field": label, "min"/"max": n}``) to ``value``.

    Unknown rule types are logged and skipped.
    """
    additional = additional or {}
    errors: list[str] = []
    for rule in rules:
        kind = rule.get("type")
        label = rule.get("field") or name
        if kind == "required":
            ok, message = is_required(value), VALIDATION_MESSAGES["required"](label)
        elif kind == "email":
            ok, message = is_email(value), VALIDATION_MESSAGES["email"]
        elif kind == "phone":
            ok, message = is_phone(value), VALIDATION_MESSAGES["phone"]
        elif kind == "password":
            ok, message = is_strong_password(value), VALIDATION_MESSAGES["password"]
        elif kind == "password_match":
            ok = additional.get("password") == value
            message = VALIDATION_MESSAGES["password_match"]
        elif kind == "name":
            ok, message = is_name(value), VALIDATION_MESSAGES["name"]
        elif kind == "business_name":
            ok, message = is_business_name(value), VALIDATION_MESSAGES["business_name"]
        elif kind == "pincode":
            ok, message = is_pincode(value), VALIDATION_MESSAGES["pincode"]
        elif kind == "min_length":
            ok = not value or len(value) >= rule["min"]
            message = VALIDATION_MESSAGES["min_length"](label, rule["min"])
        elif kind == "max_length":
            ok = not value or len(value) <= rule["max"]
            message = VALIDATION_MESSAGES["max_length"](label, rule["max"])
        elif kind == "numeric":
            ok, message = is_numeric(value), VALIDATION_MESSAGES["numeric"](label)
        elif kind == "positive":
            ok, message = is_positive(value), VALIDATION_MESSAGES["positive"](label)
        else:
            logger.warning("Unknown validation rule: {}", kind)
            continue
        if not ok:
            errors.append(message)
    return FieldResult(is_valid=not errors, errors=errors)


@dataclass
class FormResult:
    is_valid: bool
    errors: dict[str, list[str]] = field(default_factory=dict)


def validate_form(
    form: Mapping[str, Any], rules: Mapping[str, list[dict[str, Any]]]
) -> FormResult:
    errors = {}
    for name, field_rules in rules.items():
        result = validate_field(name, form.get(name), field_rules, form)
        if not result.is_valid:
            errors[name] = result.errors
    return FormResult(is_valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Password strength
# ---------------------------------------------------------------------------

STRENGTH_LABELS = ("Very Weak", "Weak", "Fair", "Good", "Strong")

_STRENGTH_CHECKS = (
    (lambda p: len(p) >= 8, "Use at least 8 characters"),
    (lambda p: re.search(r"[a-z]", p), "Add lowercase letters"),
    (lambda p: re.search(r"[A-Z]", p), "Add uppercase letters"),
    (lambda p: re.search(r"\d", p), "Add numbers"),
    (lambda p: re.search(r"[@$!%*?&]", p), "Add special characters (@$!%*?&)"),
)


@dataclass(frozen=True)
class PasswordStrength:
    score: int
    label: str
    feedback: list[str]

    @property
    def is_valid(self) -> bool:
        return self.score >= 4


def password_strength(password: str | None) -> PasswordStrength:
    """Score 0-5, one point per satisfied check. Only a full score is "Strong"."""
    if not password:
        return PasswordStrength(score=0, label=STRENGTH_LABELS[0], feedback=[])
    feedback = [hint for check, hint in _STRENGTH_CHECKS if not check(password)]
    score = len(_STRENGTH_CHECKS) - len(feedback)
    return PasswordStrength(
        score=score, label=STRENGTH_LABELS[max(score - 1, 0)], feedback=feedback
    )


# ---------------------------------------------------------------------------
# Email availability (debounced)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmailCheck:
    exists: bool
    message: str | None = None
    error: str | None = None


class EmailAvailabilityChecker:
    """
    Debounced ``/auth/check-email`` lookup.

    A call waits ``delay`` seconds before hitting the backend. A newer call
    cancels any older one still pending (waiting or in flight); the
    superseded call returns None, so only the latest input is ever answered.
    """

    def __init__(
        self,
        lookup: Callable[[str], Awaitable[dict[str, Any]]],
        delay: float = 1.0,
    ) -> None:
        self.lookup = lookup
        self.delay = delay
        self._pending: asyncio.Task[EmailCheck] | None = None

    async def _check(self, email: str) -> EmailCheck:
        await asyncio.sleep(self.delay)
        if not email or not is_email(email):
            return EmailCheck(exists=False)
        logger.debug("Checking email existence for {}", email)
        try:
            response = await self.lookup(email)
        except (ApiError, httpx.TransportError) as exc:
            logger.warning("Email check failed: {}", exc)
            return EmailCheck(exists=False, error="Unable to verify email")
        exists = bool(response.get("exists"))
        default = "Email already exists" if exists else "Email is available"
        return EmailCheck(exists=exists, message=response.get("message") or default)

    async def check(self, email: str) -> EmailCheck | None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        task = asyncio.ensure_future(self._check(email))
        self._pending = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and self._pending is not task:
                return None
            raise
