"""
Status API Dependencies — The handles the application was built with.
"""

from fastapi import Request

from timebot.keeper.supervisor import Supervisor
from timebot.services.config_store import ConfigStore


def get_store(request: Request) -> ConfigStore:
    return request.app.state.store


def get_supervisor(request: Request) -> Supervisor:
    return request.app.state.supervisor
