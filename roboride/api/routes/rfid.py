"""GET /api/v1/rfid -- most recent RFID taps, newest first."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from roboride.api.dependencies import get_db
from roboride.api.middleware import RATE_LIMIT, limiter
from roboride.api.schemas import RfidTapResponse
from roboride.config import settings
from roboride.infrastructure.repositories import RfidTapRepository

router = APIRouter(prefix="/rfid", tags=["rfid"])


@router.get("", response_model=list[RfidTapResponse], summary="Recent RFID taps")
@limiter.limit(RATE_LIMIT)
async def list_rfid_logs(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    return await RfidTapRepository(db).recent(settings.rfid_log_limit)
