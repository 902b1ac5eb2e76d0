import logging
from typing import Any, List, Optional
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.api import deps
from app.core.permissions import PERM_CATALOG_VIEW, PERM_CATALOG_MANAGE
from app.core.session import SessionContext
from app.models.user import User as UserModel
from app.schemas.catalog import (
    CatalogCategory, CatalogCategoryCreate, CatalogCategoryUpdate, CatalogCategoryTree,
    CatalogItem, CatalogItemCreate, CatalogItemUpdate, CatalogItemRouting,
)
from app.schemas.common import Msg
from app.schemas.enums import CatalogItemTypeEnum
from app.services.catalog import catalog_category_service, catalog_item_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _public_only(context: SessionContext) -> bool:
    """Callers without `catalog.manage` only see public, active entries."""
    return not context.permissions.has_permission(PERM_CATALOG_MANAGE)


# ===============================================================
# Categories
# ===============================================================
@router.get("/categories/tree",
            response_model=List[CatalogCategoryTree],
            dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_VIEW]))],
            summary="Category tree")
def read_category_tree(
    db: Session = Depends(deps.get_db),
    context: SessionContext = Depends(deps.get_session_context),
) -> Any:
    return catalog_category_service.get_tree(db, active_only=_public_only(context))


@router.post("/categories",
             response_model=CatalogCategory,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_MANAGE])), Depends(deps.require_staff)],
             summary="Create a catalog category")
def create_category(
    *,
    db: Session = Depends(deps.get_db),
    category_in: CatalogCategoryCreate,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    """The level is derived from the parent (roots are level 1)."""
    try:
        category = catalog_category_service.create(db=db, obj_in=category_in)
        db.commit()
        db.refresh(category)
        logger.info(f"Catalog category '{category.name}' (ID: {category.id}) created by {current_user.username}.")
        return category
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error creating catalog category '{category_in.name}': {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The category conflicts with an existing record.")
    except Exception:
        db.rollback()
        raise


@router.get("/categories",
            response_model=List[CatalogCategory],
            dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_VIEW]))],
            summary="List catalog categories")
def read_categories(
    db: Session = Depends(deps.get_db),
    context: SessionContext = Depends(deps.get_session_context),
    parent_id: Optional[PyUUID] = Query(None),
    roots_only: bool = Query(False),
    is_active: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    if _public_only(context):
        is_active = True
    return catalog_category_service.get_multi_filtered(
        db, parent_id=parent_id, roots_only=roots_only, is_active=is_active, skip=skip, limit=limit
    )


@router.get("/categories/{category_id}",
            response_model=CatalogCategory,
            dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_VIEW]))],
            summary="Get a catalog category")
def read_category(
    category_id: PyUUID,
    db: Session = Depends(deps.get_db),
) -> Any:
    return catalog_category_service.get_or_404(db, id=category_id)


@router.put("/categories/{category_id}",
            response_model=CatalogCategory,
            dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_MANAGE])), Depends(deps.require_staff)],
            summary="Update a catalog category")
def update_category(
    *,
    db: Session = Depends(deps.get_db),
    category_id: PyUUID,
    category_in: CatalogCategoryUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    """
    Moving a category under one of its own descendants is rejected (422);
    the levels of the moved subtree are recomputed.
    """
    category = catalog_category_service.get_or_404(db, id=category_id)
    try:
        category = catalog_category_service.update(db=db, db_obj=category, obj_in=category_in)
        db.commit()
        db.refresh(category)
        logger.info(f"Catalog category ID {category_id} updated by {current_user.username}.")
        return category
    except Exception:
        db.rollback()
        raise


@router.delete("/categories/{category_id}",
               response_model=Msg,
               dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_MANAGE])), Depends(deps.require_staff)],
               summary="Delete a catalog category")
def delete_category(
    *,
    db: Session = Depends(deps.get_db),
    category_id: PyUUID,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    try:
        category = catalog_category_service.remove(db=db, id=category_id)
        name = category.name
        db.commit()
        logger.warning(f"Catalog category '{name}' (ID: {category_id}) deleted by {current_user.username}.")
        return {"msg": f"Category '{name}' deleted."}
    except Exception:
        db.rollback()
        raise


# ===============================================================
# Items
# ===============================================================
@router.post("/items",
             response_model=CatalogItem,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_MANAGE])), Depends(deps.require_staff)],
             summary="Create a catalog item")
def create_item(
    *,
    db: Session = Depends(deps.get_db),
    item_in: CatalogItemCreate,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    try:
        item = catalog_item_service.create(db=db, obj_in=item_in)
        db.commit()
        db.refresh(item)
        logger.info(f"Catalog item '{item.name}' (ID: {item.id}) created by {current_user.username}.")
        return item
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error creating catalog item '{item_in.name}': {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The item conflicts with an existing record.")
    except Exception:
        db.rollback()
        raise


@router.get("/items",
            response_model=List[CatalogItem],
            dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_VIEW]))],
            summary="List catalog items")
def read_items(
    db: Session = Depends(deps.get_db),
    context: SessionContext = Depends(deps.get_session_context),
    category_id: Optional[PyUUID] = Query(None),
    item_type: Optional[CatalogItemTypeEnum] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    public_only = _public_only(context)
    if public_only:
        is_active = True
    return catalog_item_service.get_multi_filtered(
        db, category_id=category_id, item_type=item_type, is_active=is_active,
        public_only=public_only, search=search, skip=skip, limit=limit,
    )


@router.get("/items/{item_id}",
            response_model=CatalogItem,
            dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_VIEW]))],
            summary="Get a catalog item")
def read_item(
    item_id: PyUUID,
    db: Session = Depends(deps.get_db),
) -> Any:
    return catalog_item_service.get_or_404(db, id=item_id)


@router.get("/items/{item_id}/routing",
            response_model=CatalogItemRouting,
            dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_VIEW]))],
            summary="Routing defaults and approval rule of an item")
def read_item_routing(
    item_id: PyUUID,
    db: Session = Depends(deps.get_db),
) -> Any:
    """
    Direction / department / section a ticket opened from this item lands in,
    taken from the item, else its category, else the nearest ancestor category.
    """
    item = catalog_item_service.get_or_404(db, id=item_id)
    return catalog_item_service.resolve_routing(db, item=item)


@router.put("/items/{item_id}",
            response_model=CatalogItem,
            dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_MANAGE])), Depends(deps.require_staff)],
            summary="Update a catalog item")
def update_item(
    *,
    db: Session = Depends(deps.get_db),
    item_id: PyUUID,
    item_in: CatalogItemUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    item = catalog_item_service.get_or_404(db, id=item_id)
    try:
        item = catalog_item_service.update(db=db, db_obj=item, obj_in=item_in)
        db.commit()
        db.refresh(item)
        logger.info(f"Catalog item ID {item_id} updated by {current_user.username}.")
        return item
    except Exception:
        db.rollback()
        raise


@router.delete("/items/{item_id}",
               response_model=Msg,
               dependencies=[Depends(deps.PermissionChecker([PERM_CATALOG_MANAGE])), Depends(deps.require_staff)],
               summary="Delete a catalog item")
def delete_item(
    *,
    db: Session = Depends(deps.get_db),
    item_id: PyUUID,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    try:
        item = catalog_item_service.remove(db=db, id=item_id)
        name = item.name
        db.commit()
        logger.warning(f"Catalog item '{name}' (ID: {item_id}) deleted by {current_user.username}.")
        return {"msg": f"Item '{name}' deleted."}
    except Exception:
        db.rollback()
        raise
