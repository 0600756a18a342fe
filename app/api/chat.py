"""Chat endpoints. Completion calls run in the thread pool."""
import logging
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.api.deps import get_current_user, run_blocking
from app.database import get_db
from app.models import Feedback, User
from app.schemas.chat import (
    ChatRequest,
    ChatResponse,
    ChatSessionResponse,
    FeedbackRequest,
    FollowUpRequest,
    MessageResponse,
)
from app.services import chat as chat_service
from app.services.chat import ChatTurn

logger = logging.getLogger(__name__)

router = APIRouter()
feedback_router = APIRouter()


def _turn_response(turn: ChatTurn) -> ChatResponse:
    return ChatResponse(
        text=turn.assistant_message.content,
        chat_id=turn.session.id,
        title=turn.session.title,
        is_triple_checked=turn.enhanced_verification,
        is_fallback=turn.is_fallback,
        user_message=MessageResponse.model_validate(turn.user_message),
        assistant_message=MessageResponse.model_validate(turn.assistant_message),
    )


@router.post("", response_model=ChatResponse)
async def send_message(
    request: ChatRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Send a message; starts a new conversation when chat_id is omitted."""
    turn = await run_blocking(
        chat_service.send_message,
        db,
        user,
        request.content,
        session_id=request.chat_id,
        attachment_urls=request.file_urls,
    )
    return _turn_response(turn)


@router.post("/followup", response_model=ChatResponse)
async def follow_up(
    request: FollowUpRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    turn = await run_blocking(
        chat_service.follow_up,
        db,
        user,
        request.original_message,
        request.follow_up_message,
        request.chat_id,
    )
    return _turn_response(turn)


@router.post("/new", response_model=ChatSessionResponse, status_code=status.HTTP_201_CREATED)
def new_chat(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return chat_service.create_session(db, user)


@router.get("/history", response_model=List[ChatSessionResponse])
def chat_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Sessions, most recently active first."""
    return chat_service.list_sessions(db, user)


@router.get("/{chat_id}", response_model=List[MessageResponse])
def chat_messages(chat_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return chat_service.get_messages(db, user, chat_id)


@feedback_router.post("", status_code=status.HTTP_201_CREATED)
def submit_feedback(
    request: FeedbackRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # Feedback may only reference the caller's own conversations
    session = chat_service.get_session(db, user, request.chat_id)
    feedback = Feedback(
        user_id=user.id,
        session_id=session.id,
        feedback_type=request.feedback_type,
        message=request.message,
    )
    db.add(feedback)
    db.commit()
    logger.info(f"Feedback ({request.feedback_type}) from user {user.id} on chat {session.id}")
    return {"message": "Feedback submitted successfully"}
