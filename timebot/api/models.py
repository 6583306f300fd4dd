"""
Status API Models — Request and response schemas.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness of the process and its Discord connection."""
    status: str
    version: str
    discord_connected: bool
    timestamp: str


class TimezoneRequest(BaseModel):
    """Set a member's timezone."""
    tzname: str = Field(..., min_length=1, max_length=64, description="TZ database name")


class TimezoneResponse(BaseModel):
    """The stored mapping entry."""
    user_id: str
    tzname: str
    persisted: bool


class WindowInfo(BaseModel):
    """Active configuration summary."""
    start_hour: int
    end_hour: int
    parent_role_id: str
    child_role_id: str
    tracked_members: int


class TickInfo(BaseModel):
    """Last tick of one guild's reconciler."""
    started_at: str
    finished_at: Optional[str] = None
    group_available: bool
    evaluated: int
    added: int
    removed: int
    skipped: int
    failed: int


class GroupStatus(BaseModel):
    """One guild's reconciler."""
    running: bool
    ticks: int
    last_tick: Optional[TickInfo] = None


class StatusResponse(BaseModel):
    """Configuration and reconciler registry."""
    version: str
    configuration: WindowInfo
    groups: Dict[str, GroupStatus]
    timestamp: str
