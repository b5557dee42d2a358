from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from .. import dependencies
from ..errors import StorageError
from ..storage import StorageOperator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/storage-health")
async def storage_health(
    operator: StorageOperator = Depends(dependencies.get_operator),
) -> Response:
    """200 when the storage backend answers a check, 500 otherwise."""
    try:
        await operator.check()
    except StorageError as exc:
        logger.warning("Storage health check failed: %s", exc)
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(status_code=status.HTTP_200_OK)
