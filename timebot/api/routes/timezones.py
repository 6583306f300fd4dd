"""
Operator timezone endpoint — set a member's timezone without Discord.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from timebot.api.dependencies import get_store
from timebot.api.models import TimezoneRequest, TimezoneResponse
from timebot.errors import InvalidTimezone
from timebot.services.config_store import ConfigStore, set_user_timezone

logger = logging.getLogger("timebot.api")

router = APIRouter(prefix="/timezones", tags=["Timezones"])


@router.get("/{user_id}", response_model=TimezoneResponse)
async def get_timezone(user_id: int, store: ConfigStore = Depends(get_store)):
    """Stored timezone of a member."""
    tz_name = store.snapshot().member_timezones.get(user_id)
    if tz_name is None:
        raise HTTPException(status_code=404, detail=f"No timezone stored for {user_id}")
    return TimezoneResponse(user_id=str(user_id), tzname=tz_name, persisted=True)


@router.put("/{user_id}", response_model=TimezoneResponse)
def put_timezone(
    user_id: int,
    req: TimezoneRequest,
    request: Request,
    store: ConfigStore = Depends(get_store),
):
    """Set a member's timezone; 422 if the name is not in the tz database.

    Plain ``def`` so the file save runs in the threadpool, off the event loop.
    """
    try:
        persisted = set_user_timezone(store, user_id, req.tzname, persist=request.app.state.persist)
    except InvalidTimezone as e:
        raise HTTPException(status_code=422, detail=str(e))

    return TimezoneResponse(user_id=str(user_id), tzname=req.tzname, persisted=persisted)
