"""Image, code review, game and music endpoints."""
from typing import List
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from app.api.deps import get_current_user, run_blocking
from app.database import get_db
from app.models import User
from app.schemas.content import (
    CodeCheckRequest,
    CodeCheckResponse,
    GameGenerateRequest,
    GameResponse,
    GeneratedImageResponse,
    ImageGenerateRequest,
    ImageGenerateResponse,
    MusicGenerateRequest,
    MusicResponse,
)
from app.services import generation

image_router = APIRouter()
code_router = APIRouter()
game_router = APIRouter()
music_router = APIRouter()


@image_router.post(
    "/generate",
    response_model=ImageGenerateResponse,
    responses={403: {"description": "Daily image limit reached"}},
)
async def generate_image(
    request: ImageGenerateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Generate one image. At the daily limit answers 403 with the current counters."""
    result = await run_blocking(generation.generate_image, db, user, request.prompt)
    if not result.allowed:
        return JSONResponse(
            status_code=403,
            content={
                "detail": result.message,
                "image_count": result.count,
                "max_images": result.limit,
            },
        )
    return ImageGenerateResponse(image_url=result.image_url, image_count=result.count, max_images=result.limit)


@image_router.get("/history", response_model=List[GeneratedImageResponse])
def image_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return generation.list_images(db, user)


@code_router.post("/check", response_model=CodeCheckResponse)
async def check_code(request: CodeCheckRequest, user: User = Depends(get_current_user)):
    result = await run_blocking(generation.check_code, request.code, request.language)
    return CodeCheckResponse(
        is_valid=result.is_valid,
        suggestions=result.suggestions,
        error_message=result.error_message,
    )


@game_router.post("/generate", response_model=GameResponse)
async def generate_game(
    request: GameGenerateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Premium only. Library and detail routes stay readable once premium lapses."""
    return await run_blocking(generation.generate_game, db, user, request.prompt)


@game_router.get("/library", response_model=List[GameResponse])
def game_library(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return generation.list_games(db, user)


@game_router.get("/{game_id}", response_model=GameResponse)
def get_game(game_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return generation.get_game(db, user, game_id)


@music_router.post("/generate", response_model=MusicResponse)
async def generate_music(
    request: MusicGenerateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return await run_blocking(
        generation.generate_music,
        db,
        user,
        request.prompt,
        duration=request.duration,
        genre=request.genre,
    )


@music_router.get("/library", response_model=List[MusicResponse])
def music_library(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return generation.list_music(db, user)


@music_router.get("/{music_id}", response_model=MusicResponse)
def get_music(music_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return generation.get_music(db, user, music_id)
