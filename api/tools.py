"""Authenticated tool routes: password strength, speed test, ad-block toggle and the activity log."""

from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Query
from fastapi.responses import Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from api.base import success_response
from auth.exceptions import InvalidInputError, ServiceUnavailableError
from clients.speed_test_client import SpeedTestClient, SpeedTestError
from core.activity import ActivityLogger, ActivityResult, ActivityType, ThreatLevel
from core.password_strength import Strength, check_password_strength
from utils.timezone import now_utc

# DELETE /logs/recent keeps this much history
RECENT_WINDOW = timedelta(hours=24)

_THREAT_FOR_STRENGTH = {
    Strength.WEAK: ThreatLevel.MEDIUM,
    Strength.MEDIUM: ThreatLevel.LOW,
    Strength.STRONG: ThreatLevel.NONE,
}


class PasswordStrengthRequest(BaseModel):
    password: str


class AdBlockToggleRequest(BaseModel):
    # Any, so that "true" or 1 reach the handler and get the 400 below
    enabled: Any = None


def _activity_type(value: str | None) -> ActivityType:
    try:
        return ActivityType(value)
    except ValueError:
        valid = ", ".join(t.value for t in ActivityType)
        raise InvalidInputError(f"Unknown type '{value}'. Valid types: {valid}")


def _deleted(count: int):
    return success_response({"deletedCount": count}, message=f"Deleted {count} logs")


def create_tools_router(activity: ActivityLogger, speed_test: SpeedTestClient) -> APIRouter:
    router = APIRouter(tags=["tools"])

    @router.post("/tools/password-strength")
    async def password_strength(body: PasswordStrengthRequest):
        if not body.password:
            raise InvalidInputError("Password is required")

        report = check_password_strength(body.password)
        activity.log(
            ActivityType.PASSWORDS,
            ActivityResult(report.strength.value),
            source="password_strength",
            threat_level=_THREAT_FOR_STRENGTH[report.strength],
            details={"length": report.length, "criteria_met": report.criteria_met},
        )
        return success_response(report.to_dict())

    @router.get("/network/check")
    async def network_check():
        """Run a speed test from the server and record it."""
        try:
            result = await run_in_threadpool(speed_test.run)
        except SpeedTestError as e:
            raise ServiceUnavailableError(f"Speed test unavailable: {e}")

        activity.log(
            ActivityType.NETWORK,
            ActivityResult.SAFE,
            source="speed_test",
            details=result.model_dump(),
        )
        return success_response(result.model_dump())

    @router.post("/adblock/toggle")
    async def adblock_toggle(body: AdBlockToggleRequest):
        if not isinstance(body.enabled, bool):
            raise InvalidInputError("Enabled status required")

        activity.log(
            ActivityType.PAGES,
            ActivityResult.SAFE,
            source="adblock",
            details={"enabled": body.enabled},
        )
        state = "enabled" if body.enabled else "disabled"
        return success_response({"enabled": body.enabled}, message=f"Ad blocker {state}")

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    @router.get("/logs")
    async def list_logs(type: str | None = Query(None)):
        activity_type = _activity_type(type) if type is not None else None
        entries = activity.list_for_user(activity_type)
        return success_response([e.model_dump(mode="json") for e in entries])

    @router.get("/logs/export")
    async def export_logs(type: str | None = Query(None)):
        """CSV download of every entry of one type."""
        if type is None:
            raise InvalidInputError("Valid type required")

        activity_type = _activity_type(type)
        return Response(
            content=activity.export_csv(activity_type),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={activity_type.value}-logs.csv"},
        )

    @router.delete("/logs/recent")
    async def prune_logs():
        """Delete entries older than the recent window."""
        return _deleted(activity.delete_for_user(older_than=now_utc() - RECENT_WINDOW))

    @router.delete("/logs")
    async def clear_logs():
        return _deleted(activity.delete_for_user())

    return router
