import logging
from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

logger = logging.getLogger(__name__)

class BaseService(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        """
        Base service with the default CRUD operations.
        The CUD methods (create, update, remove) do NOT commit.
        Committing is the job of the route (endpoint).

        **Parameters**

        * `model`: SQLAlchemy model class
        """
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """Returns a row by primary key."""
        return db.get(self.model, id)

    def get_or_404(self, db: Session, id: Any) -> ModelType:
        """Returns a row by primary key or raises NotFoundError."""
        db_obj = self.get(db, id=id)
        if not db_obj:
            logger.warning(f"{self.model.__name__} not found with ID: {id}")
            raise NotFoundError(f"{self.model.__name__} with ID {id} not found.")
        return db_obj

    def create(self, db: Session, *, obj_in: CreateSchemaType) -> ModelType:
        """
        Creates a new row.
        Does NOT call db.commit(); the caller owns the transaction.
        """
        obj_in_data = obj_in.model_dump()
        db_obj = self.model(**obj_in_data)
        db.add(db_obj)
        logger.info(f"New {self.model.__name__} prepared for creation with data: {obj_in_data}")
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        """
        Updates an existing row.
        Does NOT call db.commit(); the caller owns the transaction.
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            # exclude_unset so fields that were not sent are not overwritten with None
            update_data = obj_in.model_dump(exclude_unset=True)

        obj_id = getattr(db_obj, 'id', 'N/A')
        logger.debug(f"Updating {self.model.__name__} ID {obj_id} with data: {update_data}")

        if update_data:
            for field, value in update_data.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)
                else:
                    logger.warning(f"Attempt to update missing field '{field}' on model {self.model.__name__}")

            db.add(db_obj)
            logger.info(f"{self.model.__name__} (ID: {obj_id}) prepared for update")
        else:
            logger.info(f"No data supplied to update {self.model.__name__} (ID: {obj_id})")

        return db_obj

    def remove(self, db: Session, *, id: Union[UUID, int]) -> ModelType:
        """
        Deletes a row by primary key.
        Does NOT call db.commit(); the caller owns the transaction.
        """
        obj = self.get_or_404(db, id=id)
        obj_id_log = getattr(obj, 'id', 'N/A')
        db.delete(obj)
        logger.warning(f"{self.model.__name__} (ID: {obj_id_log}) prepared for deletion")
        return obj
