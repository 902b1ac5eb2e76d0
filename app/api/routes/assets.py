import logging
from typing import Any, List, Optional
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.api import deps
from app.core.permissions import PERM_ASSETS_VIEW, PERM_ASSETS_CREATE, PERM_ASSETS_UPDATE, PERM_ASSETS_DELETE
from app.models.asset import Asset as AssetModel
from app.models.user import User as UserModel
from app.schemas.asset import Asset, AssetCreate, AssetUpdate
from app.schemas.common import Msg
from app.schemas.enums import AssetStatusEnum, AssetTypeEnum
from app.services.asset import asset_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_scoped_asset(db: Session, asset_id: PyUUID, scope: Optional[PyUUID]) -> AssetModel:
    asset = asset_service.get_or_404(db, id=asset_id)
    deps.ensure_in_scope(scope, asset.client_id)
    return asset


@router.post("/",
             response_model=Asset,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.PermissionChecker([PERM_ASSETS_CREATE]))],
             summary="Register an asset",
             response_description="The registered asset.")
def create_asset(
    *,
    db: Session = Depends(deps.get_db),
    asset_in: AssetCreate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    """
    Registers a hardware asset. `asset_tag` must be unique.
    Requires the permission: `assets.create`.
    """
    if scope is not None:
        asset_in = asset_in.model_copy(update={"client_id": scope})
    logger.info(f"Asset creation '{asset_in.name}' requested by {current_user.username}")
    try:
        asset = asset_service.create(db=db, obj_in=asset_in)
        db.commit()
        db.refresh(asset)
        logger.info(f"Asset '{asset.name}' (ID: {asset.id}) registered by {current_user.username}.")
        return asset
    except IntegrityError as e:
        db.rollback()
        error_detail = str(getattr(e, 'orig', e))
        logger.error(f"Integrity error registering asset '{asset_in.name}': {error_detail}", exc_info=True)
        if "asset_tag" in error_detail:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Asset tag '{asset_in.asset_tag}' is already in use.")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The asset conflicts with an existing record.")
    except Exception:
        db.rollback()
        raise


@router.get("/",
            response_model=List[Asset],
            dependencies=[Depends(deps.PermissionChecker([PERM_ASSETS_VIEW]))],
            summary="List assets")
def read_assets(
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    client_id: Optional[PyUUID] = Query(None),
    user_id: Optional[PyUUID] = Query(None, description="Assigned user"),
    status_filter: Optional[AssetStatusEnum] = Query(None, alias="status"),
    type_filter: Optional[AssetTypeEnum] = Query(None, alias="type"),
    search: Optional[str] = Query(None, description="Name, tag or serial number"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    return asset_service.get_multi_filtered(
        db,
        client_id=scope if scope is not None else client_id,
        user_id=user_id,
        status=status_filter,
        type=type_filter,
        search=search,
        skip=skip,
        limit=limit,
    )


@router.get("/{asset_id}",
            response_model=Asset,
            dependencies=[Depends(deps.PermissionChecker([PERM_ASSETS_VIEW]))],
            summary="Get an asset by ID")
def read_asset(
    asset_id: PyUUID,
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    return _get_scoped_asset(db, asset_id, scope)


@router.put("/{asset_id}",
            response_model=Asset,
            dependencies=[Depends(deps.PermissionChecker([PERM_ASSETS_UPDATE]))],
            summary="Update an asset")
def update_asset(
    *,
    db: Session = Depends(deps.get_db),
    asset_id: PyUUID,
    asset_in: AssetUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    asset = _get_scoped_asset(db, asset_id, scope)
    if scope is not None and "client_id" in asset_in.model_fields_set and asset_in.client_id != scope:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot move an asset to another client.")
    try:
        asset = asset_service.update(db=db, db_obj=asset, obj_in=asset_in)
        db.commit()
        db.refresh(asset)
        logger.info(f"Asset ID {asset_id} updated by {current_user.username}.")
        return asset
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error updating asset ID {asset_id}: {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The asset conflicts with an existing record.")
    except Exception:
        db.rollback()
        raise


@router.delete("/{asset_id}",
               response_model=Msg,
               dependencies=[Depends(deps.PermissionChecker([PERM_ASSETS_DELETE]))],
               summary="Delete an asset")
def delete_asset(
    *,
    db: Session = Depends(deps.get_db),
    asset_id: PyUUID,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    asset = _get_scoped_asset(db, asset_id, scope)
    name = asset.name
    try:
        asset_service.remove(db=db, id=asset_id)
        db.commit()
        logger.warning(f"Asset '{name}' (ID: {asset_id}) deleted by {current_user.username}.")
        return {"msg": f"Asset '{name}' deleted."}
    except Exception:
        db.rollback()
        raise
