"""
Quota endpoint: how many generations the caller has left in the current window.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from ...auth.dependencies import User, get_current_user
from ...services.rate_limiter import QuotaStoreError, RateLimiter, get_rate_limiter

router = APIRouter(tags=["quota"])


class QuotaResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    remaining: int
    reset_at: int = Field(alias="resetAt")


@router.get("/quota", response_model=QuotaResponse)
async def get_quota(
    user: User = Depends(get_current_user),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Read-only view of the caller's quota. Does not consume anything."""
    try:
        quota = await rate_limiter.peek(user.sub)
    except QuotaStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Quota service unavailable: {str(e)}",
        )
    return QuotaResponse(remaining=quota.remaining, reset_at=quota.reset_at)
