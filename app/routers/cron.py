# app/routers/cron.py
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.deps import get_expiry_sweeper
from app.database import get_session
from app.schemas.order import SweepResult
from app.services.expiry_sweeper import ExpirySweeper

settings = get_settings()

router = APIRouter(prefix="/cron", tags=["Cron"])


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """
    Guard for scheduler-triggered endpoints.

    When CRON_SECRET is set, callers must send
    `Authorization: Bearer <CRON_SECRET>`; without it the endpoint is open
    (local development).
    """
    if not settings.CRON_SECRET:
        return
    expected = f"Bearer {settings.CRON_SECRET}"
    if authorization is None or not secrets.compare_digest(authorization, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret",
        )


@router.get(
    "/check-expired",
    response_model=SweepResult,
    dependencies=[Depends(require_cron_secret)],
)
def check_expired(
    session: Session = Depends(get_session),
    sweeper: ExpirySweeper = Depends(get_expiry_sweeper),
):
    """
    Run one expiry sweep. Meant for an external scheduler, e.g. every 5 minutes.
    """
    return sweeper.run(session)
