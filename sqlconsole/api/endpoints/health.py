from typing import Annotated

from fastapi import APIRouter, Depends

from sqlconsole.core import schemas
from sqlconsole.core.console.store import Store
from sqlconsole.core.database import get_store

router = APIRouter(tags=["Health"])

store_dep = Annotated[Store, Depends(get_store)]


@router.get("/health", response_model=schemas.HealthResponse)
async def health_check(store: store_dep):
    """Pool telemetry over plain HTTP. Never touches the database."""
    return schemas.HealthResponse(stats=store.pool_stats())
