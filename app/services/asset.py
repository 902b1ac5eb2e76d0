import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select, or_
from fastapi import HTTPException, status

from app.core.errors import ValidationError
from app.models.asset import Asset
from app.models.client import Client
from app.models.user import User
from app.schemas.enums import AssetStatusEnum, AssetTypeEnum
from app.schemas.asset import AssetCreate, AssetUpdate

from .base_service import BaseService

logger = logging.getLogger(__name__)


class AssetService(BaseService[Asset, AssetCreate, AssetUpdate]):
    """
    Hardware inventory. Assets are hard deleted.
    """

    def get_by_tag(self, db: Session, *, asset_tag: str) -> Optional[Asset]:
        return db.execute(select(self.model).where(self.model.asset_tag == asset_tag)).scalar_one_or_none()

    def get_multi_filtered(
        self,
        db: Session,
        *,
        client_id: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        status: Optional[AssetStatusEnum] = None,
        type: Optional[AssetTypeEnum] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Asset]:
        statement = select(self.model)
        if client_id is not None:
            statement = statement.where(self.model.client_id == client_id)
        if user_id is not None:
            statement = statement.where(self.model.user_id == user_id)
        if status is not None:
            statement = statement.where(self.model.status == status.value)
        if type is not None:
            statement = statement.where(self.model.type == type.value)
        if search:
            pattern = f"%{search}%"
            statement = statement.where(or_(
                self.model.name.ilike(pattern),
                self.model.asset_tag.ilike(pattern),
                self.model.serial_number.ilike(pattern),
            ))
        statement = statement.order_by(self.model.name).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())

    def _check_owner(self, db: Session, client_id: Optional[UUID], user_id: Optional[UUID]) -> None:
        if client_id is not None and db.get(Client, client_id) is None:
            raise ValidationError(f"Client {client_id} does not exist.")
        if user_id is not None:
            user = db.get(User, user_id)
            if user is None:
                raise ValidationError(f"User {user_id} does not exist.")
            if client_id is not None and user.client_id is not None and user.client_id != client_id:
                raise ValidationError("The assigned user belongs to another client.")

    def _check_tag(self, db: Session, asset_tag: Optional[str], current_id: Optional[UUID] = None) -> None:
        if not asset_tag:
            return
        existing = self.get_by_tag(db, asset_tag=asset_tag)
        if existing and existing.id != current_id:
            logger.warning(f"Duplicate asset tag: {asset_tag}")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Asset tag '{asset_tag}' is already in use.")

    def create(self, db: Session, *, obj_in: AssetCreate) -> Asset:
        self._check_tag(db, obj_in.asset_tag)
        self._check_owner(db, obj_in.client_id, obj_in.user_id)
        data = obj_in.model_dump()
        data["type"] = obj_in.type.value
        data["status"] = obj_in.status.value
        db_obj = self.model(**data)
        db.add(db_obj)
        logger.info(f"Asset '{db_obj.name}' prepared for creation.")
        return db_obj

    def update(self, db: Session, *, db_obj: Asset, obj_in: AssetUpdate) -> Asset:
        update_data = obj_in.model_dump(exclude_unset=True)
        for field in ("type", "status"):
            if update_data.get(field) is not None:
                update_data[field] = update_data[field].value
        if "asset_tag" in update_data:
            self._check_tag(db, update_data["asset_tag"], current_id=db_obj.id)
        if "client_id" in update_data or "user_id" in update_data:
            self._check_owner(
                db,
                update_data.get("client_id", db_obj.client_id),
                update_data.get("user_id", db_obj.user_id),
            )
        return super().update(db, db_obj=db_obj, obj_in=update_data)


asset_service = AssetService(Asset)
