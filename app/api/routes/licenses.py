import logging
from datetime import date
from typing import Any, List, Optional
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.api import deps
from app.core.permissions import PERM_LICENSES_VIEW, PERM_LICENSES_CREATE, PERM_LICENSES_UPDATE, PERM_LICENSES_DELETE
from app.models.license import License as LicenseModel
from app.models.user import User as UserModel
from app.schemas.common import Msg
from app.schemas.enums import LicenseStatusEnum, LicenseTypeEnum
from app.schemas.license import License, LicenseCreate, LicenseUpdate
from app.services.license import license_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_scoped_license(db: Session, license_id: PyUUID, scope: Optional[PyUUID]) -> LicenseModel:
    license_obj = license_service.get_or_404(db, id=license_id)
    deps.ensure_in_scope(scope, license_obj.client_id)
    return license_obj


@router.post("/",
             response_model=License,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.PermissionChecker([PERM_LICENSES_CREATE]))],
             summary="Register a software license")
def create_license(
    *,
    db: Session = Depends(deps.get_db),
    license_in: LicenseCreate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    """
    Registers a license. `used_seats` may not exceed `total_seats`.
    """
    if scope is not None:
        license_in = license_in.model_copy(update={"client_id": scope})
    try:
        license_obj = license_service.create(db=db, obj_in=license_in)
        db.commit()
        db.refresh(license_obj)
        logger.info(f"License '{license_obj.name}' (ID: {license_obj.id}) registered by {current_user.username}.")
        return license_obj
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error registering license '{license_in.name}': {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The license violates a database constraint.")
    except Exception:
        db.rollback()
        raise


@router.get("/",
            response_model=List[License],
            dependencies=[Depends(deps.PermissionChecker([PERM_LICENSES_VIEW]))],
            summary="List licenses")
def read_licenses(
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    client_id: Optional[PyUUID] = Query(None),
    status_filter: Optional[LicenseStatusEnum] = Query(None, alias="status"),
    license_type: Optional[LicenseTypeEnum] = Query(None),
    expiring_before: Optional[date] = Query(None, description="Only licenses expiring on or before this day"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    return license_service.get_multi_filtered(
        db,
        client_id=scope if scope is not None else client_id,
        status=status_filter,
        license_type=license_type,
        expiring_before=expiring_before,
        skip=skip,
        limit=limit,
    )


@router.get("/{license_id}",
            response_model=License,
            dependencies=[Depends(deps.PermissionChecker([PERM_LICENSES_VIEW]))],
            summary="Get a license by ID")
def read_license(
    license_id: PyUUID,
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    return _get_scoped_license(db, license_id, scope)


@router.put("/{license_id}",
            response_model=License,
            dependencies=[Depends(deps.PermissionChecker([PERM_LICENSES_UPDATE]))],
            summary="Update a license")
def update_license(
    *,
    db: Session = Depends(deps.get_db),
    license_id: PyUUID,
    license_in: LicenseUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    license_obj = _get_scoped_license(db, license_id, scope)
    if scope is not None and "client_id" in license_in.model_fields_set and license_in.client_id != scope:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot move a license to another client.")
    try:
        license_obj = license_service.update(db=db, db_obj=license_obj, obj_in=license_in)
        db.commit()
        db.refresh(license_obj)
        logger.info(f"License ID {license_id} updated by {current_user.username}.")
        return license_obj
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error updating license ID {license_id}: {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The license violates a database constraint.")
    except Exception:
        db.rollback()
        raise


@router.delete("/{license_id}",
               response_model=Msg,
               dependencies=[Depends(deps.PermissionChecker([PERM_LICENSES_DELETE]))],
               summary="Delete a license")
def delete_license(
    *,
    db: Session = Depends(deps.get_db),
    license_id: PyUUID,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    license_obj = _get_scoped_license(db, license_id, scope)
    name = license_obj.name
    try:
        license_service.remove(db=db, id=license_id)
        db.commit()
        logger.warning(f"License '{name}' (ID: {license_id}) deleted by {current_user.username}.")
        return {"msg": f"License '{name}' deleted."}
    except Exception:
        db.rollback()
        raise
