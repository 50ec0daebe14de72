from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_admin_user
from app.models.post import Post
from app.models.user import User
from app.schemas.common import success_response
from app.services import quota_service
from app.utils.exceptions import NotFoundException

router = APIRouter(prefix="/admin")


# ─── User download history ────────────────────────────────────────────────────
@router.get("/users/{user_id}/downloads", summary="Download history of a user (Admin)")
def user_downloads(
    user_id: int,
    limit:   int     = Query(50, ge=1, le=500),
    db:      Session = Depends(get_db),
    _:       User    = Depends(get_admin_user),
):
    if not db.query(User).filter(User.id == user_id).first():
        raise NotFoundException("User")
    history = quota_service.get_user_history(db, user_id, limit)
    return success_response(f"{len(history)} downloads found", history)


# ─── Post download statistics ─────────────────────────────────────────────────
@router.get("/posts/{post_id}/download-stats", summary="Download statistics of a post (Admin)")
def post_download_stats(
    post_id: int,
    db:      Session = Depends(get_db),
    _:       User    = Depends(get_admin_user),
):
    if not db.query(Post).filter(Post.id == post_id).first():
        raise NotFoundException("Post")
    return success_response("Download statistics retrieved", quota_service.get_post_stats(db, post_id))
