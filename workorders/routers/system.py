"""Application initialization router."""

from typing import Annotated

from fastapi import APIRouter, Depends

from workorders.core.auth import AdminUser
from workorders.logging_config import get_logger
from workorders.schemas.system import InitializationStatus, InitializeResponse
from workorders.services.startup import AppInitializer, get_initializer

logger = get_logger(__name__)

router = APIRouter(prefix="/api/system", tags=["system"])

Initializer = Annotated[AppInitializer, Depends(get_initializer)]


@router.post("/initialize", response_model=InitializeResponse)
async def initialize_application(
    admin_user: AdminUser,
    initializer: Initializer,
) -> InitializeResponse:
    """Start background services. Safe to call repeatedly."""
    if not initializer.initialize():
        return InitializeResponse(
            message="Application already initialized",
            status=InitializationStatus(**initializer.status()),
            already_initialized=True,
        )

    logger.info("Application initialized via API", user_id=str(admin_user.id))
    return InitializeResponse(
        message="Application initialized successfully",
        status=InitializationStatus(**initializer.status()),
    )


@router.get("/initialize", response_model=InitializeResponse)
async def initialization_status(
    admin_user: AdminUser,
    initializer: Initializer,
) -> InitializeResponse:
    return InitializeResponse(
        message="Initialization status retrieved",
        status=InitializationStatus(**initializer.status()),
        already_initialized=initializer.completed,
    )
