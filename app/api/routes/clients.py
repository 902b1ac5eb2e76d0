import logging
from typing import Any, List, Optional
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.api import deps
from app.core.permissions import PERM_CLIENTS_VIEW, PERM_CLIENTS_CREATE, PERM_CLIENTS_UPDATE, PERM_CLIENTS_DELETE
from app.models.user import User as UserModel
from app.schemas.client import Client, ClientCreate, ClientUpdate
from app.schemas.common import Msg
from app.services.client import client_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/",
             response_model=Client,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.PermissionChecker([PERM_CLIENTS_CREATE])), Depends(deps.require_staff)],
             summary="Create a client",
             response_description="The created client.")
def create_client(
    *,
    db: Session = Depends(deps.get_db),
    client_in: ClientCreate,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    """
    Registers a client company.
    Requires the permission: `clients.create`.
    """
    logger.info(f"Client creation '{client_in.name}' requested by {current_user.username}")
    try:
        client = client_service.create(db=db, obj_in=client_in)
        db.commit()
        db.refresh(client)
        logger.info(f"Client '{client.name}' (ID: {client.id}) created by {current_user.username}.")
        return client
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error creating client '{client_in.name}': {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A client named '{client_in.name}' already exists.")
    except Exception:
        db.rollback()
        raise


@router.get("/",
            response_model=List[Client],
            dependencies=[Depends(deps.PermissionChecker([PERM_CLIENTS_VIEW]))],
            summary="List clients")
def read_clients(
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Substring of the client name"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    """Client-scoped callers only see their own client."""
    if scope is not None:
        return [client_service.get_or_404(db, id=scope)]
    return client_service.get_multi_filtered(db, is_active=is_active, search=search, skip=skip, limit=limit)


@router.get("/{client_id}",
            response_model=Client,
            dependencies=[Depends(deps.PermissionChecker([PERM_CLIENTS_VIEW]))],
            summary="Get a client by ID")
def read_client_by_id(
    client_id: PyUUID,
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    deps.ensure_in_scope(scope, client_id)
    return client_service.get_or_404(db, id=client_id)


@router.put("/{client_id}",
            response_model=Client,
            dependencies=[Depends(deps.PermissionChecker([PERM_CLIENTS_UPDATE]))],
            summary="Update a client")
def update_client(
    *,
    db: Session = Depends(deps.get_db),
    client_id: PyUUID,
    client_in: ClientUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    deps.ensure_in_scope(scope, client_id)
    client = client_service.get_or_404(db, id=client_id)
    try:
        client = client_service.update(db=db, db_obj=client, obj_in=client_in)
        db.commit()
        db.refresh(client)
        logger.info(f"Client ID {client_id} updated by {current_user.username}.")
        return client
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error updating client ID {client_id}: {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conflict with an existing client.")
    except Exception:
        db.rollback()
        raise


@router.delete("/{client_id}",
               response_model=Msg,
               dependencies=[Depends(deps.PermissionChecker([PERM_CLIENTS_DELETE])), Depends(deps.require_staff)],
               summary="Delete a client")
def delete_client(
    *,
    db: Session = Depends(deps.get_db),
    client_id: PyUUID,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    """
    Deletes a client that has no users and no hours banks (409 otherwise).
    """
    try:
        client = client_service.remove(db=db, id=client_id)
        name = client.name
        db.commit()
        logger.warning(f"Client '{name}' (ID: {client_id}) deleted by {current_user.username}.")
        return {"msg": f"Client '{name}' deleted."}
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error deleting client ID {client_id}: {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The client is still referenced by other records.")
    except Exception:
        db.rollback()
        raise
