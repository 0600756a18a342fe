"""Chat turns against a patched completion provider."""
from unittest.mock import patch

import pytest

from app.core.errors import NotFoundError, UpstreamProviderError, ValidationError
from app.models import MemoryItem
from app.services import chat
from app.services.chat import FALLBACK_REPLY


@patch("app.services.llm.complete", return_value="Namaste! How can I help?")
def test_first_message_creates_titled_session(mock_complete, db, make_user):
    user = make_user()

    turn = chat.send_message(db, user, "hello")

    assert turn.session.title == "hello"
    assert not turn.is_fallback
    messages = chat.get_messages(db, user, turn.session.id)
    assert [(m.role, m.content) for m in messages] == [
        ("user", "hello"),
        ("assistant", "Namaste! How can I help?"),
    ]
    mock_complete.assert_called_once()


@patch("app.services.llm.complete", return_value="ok")
def test_long_first_message_title_is_truncated(mock_complete, db, make_user):
    user = make_user()
    content = "Tell me about the history of the Mughal empire"[:45].ljust(45, "!")

    turn = chat.send_message(db, user, content)

    assert turn.session.title == content[:30] + "…"


@patch("app.services.llm.complete", side_effect=UpstreamProviderError("quota exhausted"))
def test_provider_failure_persists_fallback(mock_complete, db, make_user):
    user = make_user()

    turn = chat.send_message(db, user, "kya haal hai?")

    assert turn.is_fallback
    assert turn.assistant_message.content == FALLBACK_REPLY
    messages = chat.get_messages(db, user, turn.session.id)
    assert [m.content for m in messages] == ["kya haal hai?", FALLBACK_REPLY]


@patch("app.services.llm.complete", return_value="reply")
def test_later_turns_carry_history(mock_complete, db, make_user):
    user = make_user()
    first = chat.send_message(db, user, "first question")

    chat.send_message(db, user, "second question", session_id=first.session.id)

    history = mock_complete.call_args.kwargs["history"]
    assert history == [
        {"role": "user", "content": "first question"},
        {"role": "assistant", "content": "reply"},
    ]
    assert [s.id for s in chat.list_sessions(db, user)] == [first.session.id]


@patch("app.services.llm.complete", return_value="reply")
def test_premium_turn_uses_verification_and_memory(mock_complete, db, make_user, premium_fields):
    user = make_user(**premium_fields)
    db.add(MemoryItem(user_id=user.id, content="Prefers answers in Hinglish"))
    db.commit()

    turn = chat.send_message(db, user, "suggest a dinner recipe")

    assert turn.enhanced_verification
    system_prompt = mock_complete.call_args.args[0]
    assert "Prefers answers in Hinglish" in system_prompt


@patch("app.services.llm.complete", return_value="reply")
def test_free_turn_has_no_memory(mock_complete, db, make_user):
    user = make_user()
    db.add(MemoryItem(user_id=user.id, content="secret note"))
    db.commit()

    turn = chat.send_message(db, user, "hi")

    assert not turn.enhanced_verification
    assert "secret note" not in mock_complete.call_args.args[0]


def test_new_session_has_default_title(db, make_user):
    session = chat.create_session(db, make_user())
    assert session.title == "New Conversation"


def test_other_users_session_is_not_found(db, make_user):
    owner = make_user()
    session = chat.create_session(db, owner)
    with pytest.raises(NotFoundError):
        chat.get_messages(db, make_user(), session.id)


def test_follow_up_requires_session(db, make_user):
    with pytest.raises(ValidationError):
        chat.follow_up(db, make_user(), "original", "explain again", None)


@patch("app.services.llm.complete", return_value="Simpler: ...")
def test_follow_up_appends_pair(mock_complete, db, make_user):
    user = make_user()
    session = chat.create_session(db, user)

    turn = chat.follow_up(db, user, "Photosynthesis is...", "explain simply", session.id)

    assert turn.assistant_message.content == "Simpler: ..."
    assert "Photosynthesis is..." in mock_complete.call_args.args[0]
    assert len(chat.get_messages(db, user, session.id)) == 2
