from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from atelier.api.dependencies import get_current_admin
from atelier.core.exceptions import NotFoundError, PersistenceError
from atelier.db.models import User
from atelier.db.session import get_db
from atelier.schemas.category import BulkResult, CategoryBulkAction, CategoryCreate, CategoryResponse, CategoryUpdate
from atelier.services.category import (
    bulk_update_categories, create_category, delete_category, list_categories, update_category,
)

router = APIRouter(prefix="/api/v1/admin/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
async def get_categories(
    search: Optional[str] = None,
    active_only: bool = False,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await list_categories(db, active_only=active_only, search=search)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def add_category(
    data: CategoryCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await create_category(db, data, actor_id=admin.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/bulk", response_model=BulkResult)
async def bulk_categories(
    data: CategoryBulkAction,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await bulk_update_categories(db, data.ids, data.action, actor_id=admin.id)


@router.put("/{category_id}", response_model=CategoryResponse)
async def edit_category(
    category_id: int,
    data: CategoryUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await update_category(db, category_id, data, actor_id=admin.id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.delete("/{category_id}")
async def remove_category(
    category_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        await delete_category(db, category_id, actor_id=admin.id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"message": "Category deleted successfully"}
