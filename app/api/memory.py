"""Premium memory notes."""
from typing import List
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from app.api.deps import require_premium
from app.core.plans import get_plan_limit
from app.database import get_db
from app.models import User
from app.schemas.content import MemoryItemCreate, MemoryItemResponse
from app.services import memory
from app.services.quota import plan_tier

router = APIRouter()


@router.post(
    "",
    response_model=MemoryItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"description": "Premium required or memory limit reached"}},
)
def add_memory_item(
    request: MemoryItemCreate,
    user: User = Depends(require_premium),
    db: Session = Depends(get_db),
):
    item = memory.add_memory_item(db, user, request.content)
    if item is None:
        limit = get_plan_limit(plan_tier(user), "memory_items")
        return JSONResponse(
            status_code=403,
            content={"detail": f"You've reached your limit of {limit} memory items.", "max_items": limit},
        )
    return item


@router.get("", response_model=List[MemoryItemResponse])
def list_memory_items(user: User = Depends(require_premium), db: Session = Depends(get_db)):
    return memory.list_memory_items(db, user)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_memory_item(item_id: int, user: User = Depends(require_premium), db: Session = Depends(get_db)):
    memory.delete_memory_item(db, user, item_id)
