import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select

from app.core.errors import ValidationError
from app.models.client import Client
from app.models.license import License
from app.schemas.enums import LicenseStatusEnum, LicenseTypeEnum
from app.schemas.license import LicenseCreate, LicenseUpdate

from .base_service import BaseService

logger = logging.getLogger(__name__)

ENUM_FIELDS = ("license_type", "status", "billing_cycle")


def _enum_values(data: dict) -> dict:
    for field in ENUM_FIELDS:
        if data.get(field) is not None:
            data[field] = getattr(data[field], "value", data[field])
    return data


class LicenseService(BaseService[License, LicenseCreate, LicenseUpdate]):
    """
    Software licenses with seat accounting.
    """

    def get_multi_filtered(
        self,
        db: Session,
        *,
        client_id: Optional[UUID] = None,
        status: Optional[LicenseStatusEnum] = None,
        license_type: Optional[LicenseTypeEnum] = None,
        expiring_before: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[License]:
        statement = select(self.model)
        if client_id is not None:
            statement = statement.where(self.model.client_id == client_id)
        if status is not None:
            statement = statement.where(self.model.status == status.value)
        if license_type is not None:
            statement = statement.where(self.model.license_type == license_type.value)
        if expiring_before is not None:
            statement = statement.where(self.model.expiry_date.is_not(None), self.model.expiry_date <= expiring_before)
        statement = statement.order_by(self.model.name).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())

    @staticmethod
    def _check_seats(total_seats: int, used_seats: int) -> None:
        if used_seats > total_seats:
            raise ValidationError(f"Used seats ({used_seats}) cannot exceed total seats ({total_seats}).")

    def create(self, db: Session, *, obj_in: LicenseCreate) -> License:
        self._check_seats(obj_in.total_seats, obj_in.used_seats)
        if obj_in.client_id is not None and db.get(Client, obj_in.client_id) is None:
            raise ValidationError(f"Client {obj_in.client_id} does not exist.")
        db_obj = self.model(**_enum_values(obj_in.model_dump()))
        db.add(db_obj)
        logger.info(f"License '{db_obj.name}' prepared for creation ({db_obj.total_seats} seats).")
        return db_obj

    def update(self, db: Session, *, db_obj: License, obj_in: LicenseUpdate) -> License:
        update_data = _enum_values(obj_in.model_dump(exclude_unset=True))
        self._check_seats(
            update_data.get("total_seats", db_obj.total_seats),
            update_data.get("used_seats", db_obj.used_seats),
        )
        purchase_date = update_data.get("purchase_date", db_obj.purchase_date)
        expiry_date = update_data.get("expiry_date", db_obj.expiry_date)
        if purchase_date and expiry_date and expiry_date < purchase_date:
            raise ValidationError("The expiry date cannot precede the purchase date.")
        if update_data.get("client_id") is not None and db.get(Client, update_data["client_id"]) is None:
            raise ValidationError(f"Client {update_data['client_id']} does not exist.")
        return super().update(db, db_obj=db_obj, obj_in=update_data)


license_service = LicenseService(License)
