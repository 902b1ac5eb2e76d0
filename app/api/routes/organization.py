"""
Direction / Department / Section endpoints.

The three levels share the same CRUD surface, so their routers are built
by `_build_unit_router`; only the parent filter and the permissions differ.
"""
import logging
from typing import Any, List, Optional, Type
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.api import deps
from app.core.permissions import (
    PERM_DIRECTIONS_VIEW, PERM_DIRECTIONS_CREATE, PERM_DIRECTIONS_UPDATE, PERM_DIRECTIONS_DELETE,
    PERM_DEPARTMENTS_VIEW, PERM_DEPARTMENTS_CREATE, PERM_DEPARTMENTS_UPDATE, PERM_DEPARTMENTS_DELETE,
    PERM_SECTIONS_VIEW, PERM_SECTIONS_CREATE, PERM_SECTIONS_UPDATE, PERM_SECTIONS_DELETE,
)
from app.models.user import User as UserModel
from app.schemas.common import Msg
from app.schemas.organization import (
    Direction, DirectionCreate, DirectionUpdate,
    Department, DepartmentCreate, DepartmentUpdate,
    Section, SectionCreate, SectionUpdate,
)
from app.services.base_service import BaseService
from app.services.organization import direction_service, department_service, section_service

logger = logging.getLogger(__name__)


def _build_unit_router(
    *,
    label: str,
    service: BaseService,
    read_schema: Type[BaseModel],
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    parent_field: Optional[str],
    perm_view: str,
    perm_create: str,
    perm_update: str,
    perm_delete: str,
) -> APIRouter:
    router = APIRouter()

    def get_scoped(db: Session, unit_id: PyUUID, scope: Optional[PyUUID]):
        unit = service.get_or_404(db, id=unit_id)
        deps.ensure_in_scope(scope, unit.client_id)
        return unit

    @router.post("/",
                 response_model=read_schema,
                 status_code=status.HTTP_201_CREATED,
                 dependencies=[Depends(deps.PermissionChecker([perm_create]))],
                 summary=f"Create a {label}")
    def create_unit(
        *,
        db: Session = Depends(deps.get_db),
        unit_in: create_schema,
        current_user: UserModel = Depends(deps.get_current_active_user),
        scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    ) -> Any:
        if scope is not None:
            unit_in = unit_in.model_copy(update={"client_id": scope})
        try:
            unit = service.create(db=db, obj_in=unit_in)
            db.commit()
            db.refresh(unit)
            logger.info(f"{label.capitalize()} '{unit.name}' (ID: {unit.id}) created by {current_user.username}.")
            return unit
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Integrity error creating {label} '{unit_in.name}': {getattr(e, 'orig', e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"The {label} conflicts with an existing record.")
        except Exception:
            db.rollback()
            raise

    @router.get("/",
                response_model=List[read_schema],
                dependencies=[Depends(deps.PermissionChecker([perm_view]))],
                summary=f"List {label}s")
    def read_units(
        db: Session = Depends(deps.get_db),
        scope: Optional[PyUUID] = Depends(deps.get_client_scope),
        client_id: Optional[PyUUID] = Query(None),
        parent_id: Optional[PyUUID] = Query(None, description="Filter by parent unit, where the level has one"),
        is_active: Optional[bool] = Query(None),
        skip: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=500),
    ) -> Any:
        parents = {parent_field: parent_id} if parent_field else {}
        return service.get_multi_filtered(
            db, client_id=scope if scope is not None else client_id, is_active=is_active,
            skip=skip, limit=limit, **parents
        )

    @router.get("/{unit_id}",
                response_model=read_schema,
                dependencies=[Depends(deps.PermissionChecker([perm_view]))],
                summary=f"Get a {label} by ID")
    def read_unit(
        unit_id: PyUUID,
        db: Session = Depends(deps.get_db),
        scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    ) -> Any:
        return get_scoped(db, unit_id, scope)

    @router.put("/{unit_id}",
                response_model=read_schema,
                dependencies=[Depends(deps.PermissionChecker([perm_update]))],
                summary=f"Update a {label}")
    def update_unit(
        *,
        db: Session = Depends(deps.get_db),
        unit_id: PyUUID,
        unit_in: update_schema,
        current_user: UserModel = Depends(deps.get_current_active_user),
        scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    ) -> Any:
        unit = get_scoped(db, unit_id, scope)
        try:
            unit = service.update(db=db, db_obj=unit, obj_in=unit_in)
            db.commit()
            db.refresh(unit)
            logger.info(f"{label.capitalize()} ID {unit_id} updated by {current_user.username}.")
            return unit
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Integrity error updating {label} ID {unit_id}: {getattr(e, 'orig', e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"The {label} conflicts with an existing record.")
        except Exception:
            db.rollback()
            raise

    @router.delete("/{unit_id}",
                   response_model=Msg,
                   dependencies=[Depends(deps.PermissionChecker([perm_delete]))],
                   summary=f"Delete a {label}")
    def delete_unit(
        *,
        db: Session = Depends(deps.get_db),
        unit_id: PyUUID,
        current_user: UserModel = Depends(deps.get_current_active_user),
        scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    ) -> Any:
        """Refused with 409 while child units or users still reference it."""
        get_scoped(db, unit_id, scope)
        try:
            unit = service.remove(db=db, id=unit_id)
            name = unit.name
            db.commit()
            logger.warning(f"{label.capitalize()} '{name}' (ID: {unit_id}) deleted by {current_user.username}.")
            return {"msg": f"{label.capitalize()} '{name}' deleted."}
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Integrity error deleting {label} ID {unit_id}: {getattr(e, 'orig', e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"The {label} is still referenced.")
        except Exception:
            db.rollback()
            raise

    return router


directions_router = _build_unit_router(
    label="direction",
    service=direction_service,
    read_schema=Direction,
    create_schema=DirectionCreate,
    update_schema=DirectionUpdate,
    parent_field=None,
    perm_view=PERM_DIRECTIONS_VIEW,
    perm_create=PERM_DIRECTIONS_CREATE,
    perm_update=PERM_DIRECTIONS_UPDATE,
    perm_delete=PERM_DIRECTIONS_DELETE,
)

departments_router = _build_unit_router(
    label="department",
    service=department_service,
    read_schema=Department,
    create_schema=DepartmentCreate,
    update_schema=DepartmentUpdate,
    parent_field="direction_id",
    perm_view=PERM_DEPARTMENTS_VIEW,
    perm_create=PERM_DEPARTMENTS_CREATE,
    perm_update=PERM_DEPARTMENTS_UPDATE,
    perm_delete=PERM_DEPARTMENTS_DELETE,
)

sections_router = _build_unit_router(
    label="section",
    service=section_service,
    read_schema=Section,
    create_schema=SectionCreate,
    update_schema=SectionUpdate,
    parent_field="department_id",
    perm_view=PERM_SECTIONS_VIEW,
    perm_create=PERM_SECTIONS_CREATE,
    perm_update=PERM_SECTIONS_UPDATE,
    perm_delete=PERM_SECTIONS_DELETE,
)
