"""
Chat sessions and turns.

A turn appends the user message, calls the completion provider once, and appends the
assistant message. Provider failures are recovered with a fixed fallback reply so every
user message is paired with an assistant message. Turns on one session are serialized.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import NotFoundError, UpstreamProviderError, ValidationError
from app.core.prompts import attachments_context, get_follow_up_instruction, get_system_instruction
from app.models import ChatSession, Message, User
from app.models.chat import ASSISTANT_ROLE, USER_ROLE
from app.services import cache, llm
from app.services.memory import memory_notes_for_prompt
from app.services.quota import is_currently_premium
from app.utils.text import make_title

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I couldn't process your request. Please try again in a moment."

# A held session lock outlives the provider timeout by a margin
SESSION_LOCK_TIMEOUT = settings.llm_timeout_seconds + 30


@dataclass
class ChatTurn:
    session: ChatSession
    user_message: Message
    assistant_message: Message
    is_fallback: bool = False
    enhanced_verification: bool = False


def create_session(db: Session, user: User, title: Optional[str] = None) -> ChatSession:
    """Create an empty session ("New Conversation") or one titled from its first message."""
    now = datetime.utcnow()
    session = ChatSession(user_id=user.id, title=make_title(title), created_at=now, updated_at=now)
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def list_sessions(db: Session, user: User) -> List[ChatSession]:
    return (
        db.query(ChatSession)
        .filter(ChatSession.user_id == user.id)
        .order_by(ChatSession.updated_at.desc(), ChatSession.id.desc())
        .all()
    )


def get_session(db: Session, user: User, session_id: int) -> ChatSession:
    session = (
        db.query(ChatSession)
        .filter(ChatSession.id == session_id, ChatSession.user_id == user.id)
        .first()
    )
    if not session:
        raise NotFoundError("Chat not found")
    return session


def get_messages(db: Session, user: User, session_id: int) -> List[Message]:
    """Messages of an owned session, oldest first."""
    session = get_session(db, user, session_id)
    return (
        db.query(Message)
        .filter(Message.session_id == session.id)
        .order_by(Message.timestamp.asc(), Message.id.asc())
        .all()
    )


def _recent_history(db: Session, session_id: int, before_id: int) -> List[Dict[str, str]]:
    """Last N messages before `before_id`, chronological, in provider history shape."""
    messages = (
        db.query(Message)
        .filter(Message.session_id == session_id, Message.id < before_id)
        .order_by(Message.timestamp.desc(), Message.id.desc())
        .limit(settings.llm_history_max_messages)
        .all()
    )
    messages.reverse()
    return [{"role": m.role, "content": m.content} for m in messages]


def _append_message(db: Session, session: ChatSession, role: str, content: str) -> Message:
    """Insert a message and bump the session in one transaction."""
    now = datetime.utcnow()
    message = Message(session_id=session.id, role=role, content=content, timestamp=now)
    session.updated_at = now
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def _complete_or_fallback(
    system_prompt: str,
    user_prompt: str,
    attachments: Optional[str] = None,
    history: Optional[List[Dict[str, str]]] = None,
) -> tuple[str, bool]:
    try:
        return llm.complete(system_prompt, user_prompt, attachments=attachments, history=history), False
    except UpstreamProviderError as e:
        logger.warning(f"Completion failed, answering with fallback: {e.message}")
        return FALLBACK_REPLY, True


def send_message(
    db: Session,
    user: User,
    content: str,
    session_id: Optional[int] = None,
    attachment_urls: Optional[List[str]] = None,
) -> ChatTurn:
    """
    Run one chat turn, creating the session when `session_id` is absent.

    The user message is committed before the provider call, so it survives provider failure.
    """
    if session_id is None:
        session = create_session(db, user, title=content)
    else:
        session = get_session(db, user, session_id)

    enhanced = is_currently_premium(user)
    memory_notes = memory_notes_for_prompt(db, user) if enhanced else None
    system_prompt = get_system_instruction(
        language=user.preferred_language,
        bot_name=user.bot_name,
        enhanced_verification=enhanced,
        memory_notes=memory_notes,
    )

    with cache.lock(f"chat-session:{session.id}", timeout=SESSION_LOCK_TIMEOUT):
        user_message = _append_message(db, session, USER_ROLE, content)
        history = _recent_history(db, session.id, user_message.id)
        reply, is_fallback = _complete_or_fallback(
            system_prompt,
            content,
            attachments=attachments_context(attachment_urls),
            history=history,
        )
        assistant_message = _append_message(db, session, ASSISTANT_ROLE, reply)

    logger.info(
        f"Chat turn done: user={user.id} session={session.id} "
        f"enhanced={enhanced} fallback={is_fallback}"
    )
    return ChatTurn(
        session=session,
        user_message=user_message,
        assistant_message=assistant_message,
        is_fallback=is_fallback,
        enhanced_verification=enhanced,
    )


def follow_up(
    db: Session,
    user: User,
    original_message: str,
    follow_up_text: str,
    session_id: Optional[int],
) -> ChatTurn:
    """Ask for a clearer explanation of `original_message` inside an existing session."""
    if session_id is None:
        raise ValidationError("Missing required parameters")
    session = get_session(db, user, session_id)

    system_prompt = get_follow_up_instruction(
        original_message=original_message or "",
        follow_up=follow_up_text,
        language=user.preferred_language,
        bot_name=user.bot_name,
    )

    with cache.lock(f"chat-session:{session.id}", timeout=SESSION_LOCK_TIMEOUT):
        user_message = _append_message(db, session, USER_ROLE, follow_up_text)
        reply, is_fallback = _complete_or_fallback(system_prompt, follow_up_text)
        assistant_message = _append_message(db, session, ASSISTANT_ROLE, reply)

    return ChatTurn(
        session=session,
        user_message=user_message,
        assistant_message=assistant_message,
        is_fallback=is_fallback,
    )
