"""Image, game and music generation plus code review."""
import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import NotFoundError, PremiumRequiredError, UpstreamProviderError
from app.core.plans import DEFAULT_MUSIC_DURATION
from app.core import prompts
from app.models import GeneratedGame, GeneratedImage, GeneratedMusic, User
from app.services import cache, llm, storage
from app.services.quota import check_and_consume_image_quota, is_currently_premium, release_image_quota
from app.utils.files import image_key
from app.utils.text import slugify

logger = logging.getLogger(__name__)

GAME_PREMIUM_MESSAGE = "Game generation is a premium feature. Please upgrade your account."
MUSIC_PREMIUM_MESSAGE = "Music generation is a premium feature. Please upgrade your account."


@dataclass
class ImageResult:
    allowed: bool
    count: int
    limit: int
    image_url: Optional[str] = None
    message: Optional[str] = None


@dataclass
class CodeCheckResult:
    is_valid: bool
    suggestions: List[str] = field(default_factory=list)
    error_message: Optional[str] = None


def _render_image(user: User, prompt: str) -> str:
    """Generate and store one image; returns its public URL."""
    image_bytes, mime_type = llm.generate_image(prompt)
    return storage.put(image_bytes, image_key(user.id, uuid.uuid4().hex, mime_type), mime_type)


def generate_image(db: Session, user: User, prompt: str) -> ImageResult:
    """
    Generate an image if the user's daily quota allows it.

    A quota denial is returned as a result. Provider failures give the quota unit back
    and raise UpstreamProviderError.
    """
    decision = check_and_consume_image_quota(db, user)
    if not decision.allowed:
        return ImageResult(
            allowed=False,
            count=decision.count,
            limit=decision.limit,
            message=decision.message,
        )

    try:
        image_url = _render_image(user, prompts.enhance_image_prompt(prompt))
    except UpstreamProviderError:
        release_image_quota(db, user)
        raise

    db.add(GeneratedImage(user_id=user.id, prompt=prompt, image_url=image_url))
    db.commit()
    logger.info(f"Image generated for user {user.id} ({decision.count}/{decision.limit})")
    return ImageResult(allowed=True, count=decision.count, limit=decision.limit, image_url=image_url)


def list_images(db: Session, user: User) -> List[GeneratedImage]:
    return (
        db.query(GeneratedImage)
        .filter(GeneratedImage.user_id == user.id)
        .order_by(GeneratedImage.created_at.desc(), GeneratedImage.id.desc())
        .all()
    )


def _require_field(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise UpstreamProviderError(f"The AI provider response is missing '{key}'")
    return value.strip()


def generate_game(db: Session, user: User, prompt: str) -> GeneratedGame:
    """Concept, then playable canvas code, then a thumbnail. Premium only."""
    if not is_currently_premium(user):
        raise PremiumRequiredError(GAME_PREMIUM_MESSAGE)

    concept = llm.complete_json(
        prompts.GAME_DESIGNER_PROMPT,
        prompts.GAME_CONCEPT_PROMPT.format(prompt=prompt),
        temperature=0.7,
        max_tokens=1024,
    )
    title = _require_field(concept, "title")
    details = {
        "title": title,
        "description": concept.get("description") or "",
        "game_type": concept.get("gameType") or "2D game",
        "main_character": concept.get("mainCharacter") or "a hero",
        "objective": concept.get("objective") or "",
        "visual_style": concept.get("visualStyle") or "colorful",
    }

    game_code = llm.complete(
        prompts.GAME_DEVELOPER_PROMPT,
        prompts.GAME_CODE_PROMPT.format(**details),
        temperature=0.3,
        max_tokens=8192,
    )

    # A game without a thumbnail is still a usable result
    try:
        thumbnail_url = _render_image(user, prompts.GAME_THUMBNAIL_PROMPT.format(**details))
    except UpstreamProviderError as e:
        logger.warning(f"Game thumbnail failed for user {user.id}: {e.message}")
        thumbnail_url = None

    game = GeneratedGame(
        user_id=user.id,
        prompt=prompt,
        title=title,
        description=details["description"],
        game_code=game_code,
        game_url=f"/game/{quote(slugify(title, '-'))}",
        thumbnail_url=thumbnail_url,
    )
    db.add(game)
    db.commit()
    db.refresh(game)
    logger.info(f"Game {game.id} generated for user {user.id}")
    return game


def generate_music(
    db: Session,
    user: User,
    prompt: str,
    duration: Optional[int] = None,
    genre: Optional[str] = None,
) -> GeneratedMusic:
    """Concept plus a measure-by-measure composition description. Premium only."""
    if not is_currently_premium(user):
        raise PremiumRequiredError(MUSIC_PREMIUM_MESSAGE)
    duration = duration or DEFAULT_MUSIC_DURATION

    concept = llm.complete_json(
        prompts.COMPOSER_PROMPT,
        prompts.MUSIC_CONCEPT_PROMPT.format(
            prompt=prompt,
            genre_context=f" in the {genre} genre" if genre else "",
            duration=duration,
        ),
        temperature=0.7,
        max_tokens=1024,
    )
    title = _require_field(concept, "title")
    instruments = concept.get("instruments") or []
    if not isinstance(instruments, list):
        instruments = [str(instruments)]

    composition = llm.complete(
        prompts.MIDI_PROGRAMMER_PROMPT,
        prompts.MUSIC_COMPOSITION_PROMPT.format(
            title=title,
            description=concept.get("description") or "",
            mood=concept.get("mood") or "",
            instruments=", ".join(str(i) for i in instruments),
            tempo=concept.get("tempo") or "",
            structure=concept.get("structure") or "",
        ),
        temperature=0.4,
    )

    music = GeneratedMusic(
        user_id=user.id,
        prompt=prompt,
        title=title,
        description=f"{concept.get('description') or ''}\n\n{composition}".strip(),
        music_url=f"/music/{quote(slugify(title, '-'))}.mp3",
        duration=duration,
    )
    db.add(music)
    db.commit()
    db.refresh(music)
    logger.info(f"Music {music.id} generated for user {user.id}")
    return music


def list_games(db: Session, user: User) -> List[GeneratedGame]:
    return (
        db.query(GeneratedGame)
        .filter(GeneratedGame.user_id == user.id)
        .order_by(GeneratedGame.created_at.desc(), GeneratedGame.id.desc())
        .all()
    )


def get_game(db: Session, user: User, game_id: int) -> GeneratedGame:
    game = (
        db.query(GeneratedGame)
        .filter(GeneratedGame.id == game_id, GeneratedGame.user_id == user.id)
        .first()
    )
    if not game:
        raise NotFoundError("Game not found")
    return game


def list_music(db: Session, user: User) -> List[GeneratedMusic]:
    return (
        db.query(GeneratedMusic)
        .filter(GeneratedMusic.user_id == user.id)
        .order_by(GeneratedMusic.created_at.desc(), GeneratedMusic.id.desc())
        .all()
    )


def get_music(db: Session, user: User, music_id: int) -> GeneratedMusic:
    music = (
        db.query(GeneratedMusic)
        .filter(GeneratedMusic.id == music_id, GeneratedMusic.user_id == user.id)
        .first()
    )
    if not music:
        raise NotFoundError("Music not found")
    return music


def _code_check_cache_key(code: str, language: str) -> str:
    return f"code-check:{hashlib.md5((language + chr(0) + code).encode()).hexdigest()}"


def check_code(code: str, language: str) -> CodeCheckResult:
    """Review a code snippet. Results are cached by code and language."""
    cache_key = _code_check_cache_key(code, language)
    cached = cache.get_json(cache_key)
    if cached:
        logger.info("Cache hit for code check")
        return CodeCheckResult(**cached)

    data = llm.complete_json(
        prompts.CODE_REVIEW_PROMPT.format(language=language),
        code,
        temperature=0.3,
        max_tokens=1024,
    )
    suggestions = data.get("suggestions") or []
    if not isinstance(suggestions, list):
        suggestions = [str(suggestions)]
    result = CodeCheckResult(
        is_valid=bool(data.get("isValid", False)),
        suggestions=[str(s) for s in suggestions],
        error_message=data.get("errorMessage") or None,
    )
    cache.set_json(cache_key, result.__dict__, settings.code_check_cache_ttl)
    return result
