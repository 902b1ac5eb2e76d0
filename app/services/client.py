import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select, func
from fastapi import HTTPException, status

from app.models.client import Client
from app.models.hours_bank import HoursBank
from app.models.user import User
from app.schemas.client import ClientCreate, ClientUpdate

from .base_service import BaseService

logger = logging.getLogger(__name__)


class ClientService(BaseService[Client, ClientCreate, ClientUpdate]):
    """
    Service for client companies.
    """

    def get_by_name(self, db: Session, *, name: str) -> Optional[Client]:
        statement = select(self.model).where(self.model.name == name)
        return db.execute(statement).scalar_one_or_none()

    def get_multi_filtered(
        self, db: Session, *, is_active: Optional[bool] = None, search: Optional[str] = None,
        skip: int = 0, limit: int = 100
    ) -> List[Client]:
        statement = select(self.model)
        if is_active is not None:
            statement = statement.where(self.model.is_active == is_active)
        if search:
            statement = statement.where(self.model.name.ilike(f"%{search}%"))
        statement = statement.order_by(self.model.name).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())

    def create(self, db: Session, *, obj_in: ClientCreate) -> Client:
        if self.get_by_name(db, name=obj_in.name):
            logger.warning(f"Attempt to create duplicate client: {obj_in.name}")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A client named '{obj_in.name}' already exists.")
        return super().create(db, obj_in=obj_in)

    def update(self, db: Session, *, db_obj: Client, obj_in: ClientUpdate) -> Client:
        update_data = obj_in.model_dump(exclude_unset=True)
        new_name = update_data.get("name")
        if new_name and new_name != db_obj.name:
            existing = self.get_by_name(db, name=new_name)
            if existing and existing.id != db_obj.id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A client named '{new_name}' already exists.")
        return super().update(db, db_obj=db_obj, obj_in=update_data)

    def remove(self, db: Session, *, id: UUID) -> Client:
        """
        Deletes a client with no users and no hours banks.
        Does NOT call db.commit().
        """
        client = self.get_or_404(db, id=id)
        users = db.execute(select(func.count()).select_from(User).where(User.client_id == id)).scalar_one()
        banks = db.execute(select(func.count()).select_from(HoursBank).where(HoursBank.client_id == id)).scalar_one()
        if users or banks:
            logger.warning(f"Delete of client {id} refused: {users} users, {banks} hours banks.")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="The client still has users or hours banks; deactivate it instead.",
            )
        db.delete(client)
        logger.warning(f"Client {id} prepared for deletion")
        return client


client_service = ClientService(Client)
