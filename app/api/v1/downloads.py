from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session, sessionmaker
from starlette.background import BackgroundTask

from app.config import settings
from app.database import get_db, get_session_factory
from app.dependencies import get_current_user, get_optional_user, get_client_ip
from app.models.user import User
from app.schemas.download import DownloadLinkResponse, LimitStatus
from app.services import quota_service
from app.services.download_service import download_service, record_transfer
from app.stores import EphemeralStores, get_stores

router = APIRouter()


# ─── GET /generate-link/{post_id}/{file_type} ─────────────────────────────────
@router.get(
    "/generate-link/{post_id}/{file_type}",
    summary="Mint a one-hour, single-use download link (pdf | zip)",
    response_model=DownloadLinkResponse,
)
def generate_link(
    post_id: str,
    file_type: str,
    request: Request,
    db: Session = Depends(get_db),
    stores: EphemeralStores = Depends(get_stores),
    current_user: User = Depends(get_current_user),
):
    grant, status = download_service.generate_link(db, stores, current_user, post_id, file_type)
    return {
        "success":        True,
        "message":        "Temporary download link generated",
        "downloadURL":    str(request.url_for("download_temp", token=grant.token)),
        "fileType":       grant.kind,
        "expiresAt":      grant.expires_at.isoformat(),
        "downloadStatus": status,
    }


# ─── GET /download-temp/{token} ───────────────────────────────────────────────
@router.get(
    "/download-temp/{token}",
    name="download_temp",
    summary="Redeem a download link and stream the file",
    response_class=FileResponse,
)
def download_temp(
    token: str,
    request: Request,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    stores: EphemeralStores = Depends(get_stores),
    current_user: User | None = Depends(get_optional_user),
):
    """
    The token is consumed before streaming starts. The transfer counts as in
    flight until the file has been sent in full and the download is recorded.
    """
    redeemed = download_service.redeem(db, stores, token, current_user)
    return FileResponse(
        redeemed.path,
        filename=redeemed.file_name,
        background=BackgroundTask(
            record_transfer,
            session_factory,
            stores,
            redeemed,
            get_client_ip(request),
            request.headers.get("user-agent"),
        ),
    )


# ─── GET /check-limit ─────────────────────────────────────────────────────────
@router.get(
    "/check-limit",
    summary="Today's download count and remaining quota",
    response_model=LimitStatus,
)
def check_limit(
    db: Session = Depends(get_db),
    stores: EphemeralStores = Depends(get_stores),
    current_user: User = Depends(get_current_user),
):
    status = quota_service.check_daily_limit(
        db, current_user.id, in_flight=stores.transfers.count_for(current_user.id)
    )
    return {**status, "limit": settings.DAILY_DOWNLOAD_LIMIT}
