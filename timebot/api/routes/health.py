"""
Health and status endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from timebot import __version__
from timebot.api.dependencies import get_store, get_supervisor
from timebot.api.models import HealthResponse, StatusResponse, WindowInfo
from timebot.keeper.supervisor import Supervisor
from timebot.services.config_store import ConfigStore

router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    discord_connected = False
    try:
        discord_connected = bool(request.app.state.is_connected())
    except Exception:
        pass

    return HealthResponse(
        status="healthy",
        version=__version__,
        discord_connected=discord_connected,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/status", response_model=StatusResponse)
async def status(
    store: ConfigStore = Depends(get_store),
    supervisor: Supervisor = Depends(get_supervisor),
):
    """Active configuration and the per-guild reconciler registry."""
    conf = store.snapshot()
    return StatusResponse(
        version=__version__,
        configuration=WindowInfo(
            start_hour=conf.start_hour,
            end_hour=conf.end_hour,
            parent_role_id=str(conf.parent_role_id),
            child_role_id=str(conf.child_role_id),
            tracked_members=len(conf.member_timezones),
        ),
        groups={str(group_id): state for group_id, state in supervisor.status().items()},
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
