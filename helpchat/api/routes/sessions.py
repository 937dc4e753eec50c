"""Help session listing endpoint."""

from uuid import UUID

from fastapi import APIRouter, Depends

from helpchat.api.deps import get_current_user_id, get_session_store
from helpchat.schemas.chat import ChatMessageRead
from helpchat.schemas.session import HelpSessionListResponse, HelpSessionSummary
from helpchat.services.sessions import HelpSessionStore

router = APIRouter(prefix="/help-sessions", tags=["help-sessions"])


@router.get("", response_model=HelpSessionListResponse)
async def list_my_sessions(
    user_id: UUID = Depends(get_current_user_id),
    sessions: HelpSessionStore = Depends(get_session_store),
) -> HelpSessionListResponse:
    """List the caller's sessions with unread counts and the latest message."""
    summaries = await sessions.list_for_user(user_id)
    return HelpSessionListResponse(
        total=len(summaries),
        sessions=[
            HelpSessionSummary(
                session_id=s.session.id,
                status=s.session.status,
                requester_id=s.session.requester_id,
                helper_id=s.session.helper_id,
                counterpart_id=s.counterpart_id,
                offer_id=s.session.offer_id,
                request_id=s.session.request_id,
                result=s.session.result,
                finalized_by=s.session.finalized_by,
                rating_pending=s.session.rating_pending,
                started_at=s.session.started_at,
                ended_at=s.session.ended_at,
                unread_count=s.unread_count,
                last_message=(
                    ChatMessageRead.model_validate(s.last_message)
                    if s.last_message is not None
                    else None
                ),
            )
            for s in summaries
        ],
    )
