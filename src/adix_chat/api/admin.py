"""Administrative endpoints, all behind the admin bearer token."""

from fastapi import APIRouter, Depends
from structlog import get_logger

from ..domain.models import (
    BroadcastRequest,
    ClearDataRequest,
    RateLimitUpdate,
    SystemStats,
)
from ..repositories.base import Repository
from .dependencies import get_rate_limiter, get_repository, require_admin
from .rate_limiter import RateLimiter

logger = get_logger()

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/rate-limit")
async def get_rate_limit(limiter: RateLimiter = Depends(get_rate_limiter)) -> dict:
    return {"rateLimit": limiter.limit}


@router.post("/rate-limit")
async def set_rate_limit(
    update: RateLimitUpdate,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict:
    """Change the global per-client limit; applies to the very next check."""
    limiter.limit = update.rate_limit
    return {"success": True, "newRateLimit": limiter.limit}


@router.get("/stats", response_model=SystemStats)
async def get_stats(
    repository: Repository = Depends(get_repository),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> SystemStats:
    chats = await repository.list_chats()
    return SystemStats(
        total_chats=len(chats),
        total_messages=await repository.count_messages(),
        current_rate_limit=limiter.limit,
        active_users=await limiter.active_clients(),
    )


@router.post("/clear-data")
async def clear_data(
    request: ClearDataRequest,
    repository: Repository = Depends(get_repository),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict:
    chats = await repository.list_chats()
    for chat in chats:
        await repository.delete_chat(chat.id)
    if request.data_type == "all":
        await limiter.reset()

    logger.info("data_cleared", data_type=request.data_type, chats_removed=len(chats))
    label = "all data" if request.data_type == "all" else request.data_type
    return {"success": True, "message": f"Successfully cleared {label}"}


@router.post("/broadcast")
async def broadcast(request: BroadcastRequest) -> dict:
    # No push channel exists yet; the message is only recorded
    logger.info("broadcast_requested", message_type=request.type, length=len(request.message))
    return {"success": True, "message": "Broadcast sent", "recipients": 0}
