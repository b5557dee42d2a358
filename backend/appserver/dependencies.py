from __future__ import annotations

from fastapi import Depends, Request

from .container import ApplicationState
from .storage import StorageOperator


def get_application_state(request: Request) -> ApplicationState:
    return request.app.state.application


def get_operator(state: ApplicationState = Depends(get_application_state)) -> StorageOperator:
    return state.operator
