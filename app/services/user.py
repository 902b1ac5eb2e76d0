import logging
from typing import Any, Dict, List, Optional, Union
from uuid import UUID
from datetime import datetime, timezone

from sqlalchemy.orm import Session
from sqlalchemy import select
from fastapi import HTTPException, status

from app.core.errors import ValidationError
from app.core.password import verify_password, get_password_hash
from app.core.permissions import CLIENT_ROLES
from app.models.client import Client
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate

from .base_service import BaseService
from .organization import resolve_placement

logger = logging.getLogger(__name__)

PLACEMENT_FIELDS = ("direction_id", "department_id", "section_id")


class UserService(BaseService[User, UserCreate, UserUpdate]):
    """
    Service for users. Handles passwords, placement and soft deletion.
    """

    def get_by_username(self, db: Session, *, username: str) -> Optional[User]:
        statement = select(self.model).where(self.model.username == username)
        return db.execute(statement).scalar_one_or_none()

    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        statement = select(self.model).where(self.model.email == email)
        return db.execute(statement).scalar_one_or_none()

    def get_multi_filtered(
        self, db: Session, *, role: Optional[str] = None, client_id: Optional[UUID] = None,
        is_active: Optional[bool] = None, skip: int = 0, limit: int = 100
    ) -> List[User]:
        statement = select(self.model)
        if role:
            statement = statement.where(self.model.role == role)
        if client_id is not None:
            statement = statement.where(self.model.client_id == client_id)
        if is_active is not None:
            statement = statement.where(self.model.is_active == is_active)
        statement = statement.order_by(self.model.username).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())

    def _check_client(self, db: Session, role: str, client_id: Optional[UUID]) -> None:
        if client_id is not None and db.get(Client, client_id) is None:
            raise ValidationError(f"Client {client_id} does not exist.")
        if role in CLIENT_ROLES and client_id is None:
            raise ValidationError(f"Users with role '{role}' must belong to a client.")

    def create(self, db: Session, *, obj_in: UserCreate) -> User:
        """
        Creates a user with a bcrypt password hash.
        Does NOT call db.commit().
        """
        logger.debug(f"Attempting to create user: {obj_in.username}")
        if self.get_by_username(db, username=obj_in.username):
            logger.warning(f"Attempt to create user with duplicate username: {obj_in.username}")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with that username already exists.")

        if obj_in.email and self.get_by_email(db, email=obj_in.email):
            logger.warning(f"Attempt to create user with duplicate email: {obj_in.email}")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with that e-mail already exists.")

        create_data = obj_in.model_dump()
        create_data["role"] = obj_in.role.value
        self._check_client(db, create_data["role"], create_data.get("client_id"))
        (
            create_data["direction_id"], create_data["department_id"], create_data["section_id"]
        ) = resolve_placement(db, **{field: create_data.get(field) for field in PLACEMENT_FIELDS})

        create_data["hashed_password"] = get_password_hash(create_data.pop("password"))
        db_obj = self.model(**create_data)
        db.add(db_obj)
        logger.info(f"User '{db_obj.username}' prepared for creation with role '{db_obj.role}'.")
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: User,
        obj_in: Union[UserUpdate, Dict[str, Any]]
    ) -> User:
        """
        Updates a user. Does NOT call db.commit().
        """
        update_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        user_id = db_obj.id
        logger.debug(f"Attempting to update user ID {user_id} with data: {update_data}")

        password = update_data.pop("password", None)
        if password:
            update_data["hashed_password"] = get_password_hash(password)
            logger.info(f"Password changed for user ID {user_id}.")

        if "role" in update_data:
            if update_data["role"] is None:
                raise ValidationError("A user cannot be left without a role.")
            update_data["role"] = getattr(update_data["role"], "value", update_data["role"])

        if update_data.get("email") and update_data["email"] != db_obj.email:
            existing_email = self.get_by_email(db, email=update_data["email"])
            if existing_email and existing_email.id != user_id:
                logger.warning(f"E-mail conflict updating user ID {user_id} to '{update_data['email']}'.")
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="E-mail already used by another user.")

        if "role" in update_data or "client_id" in update_data:
            self._check_client(
                db,
                update_data.get("role", db_obj.role),
                update_data.get("client_id", db_obj.client_id),
            )

        if any(field in update_data for field in PLACEMENT_FIELDS):
            placement = {field: update_data.get(field, getattr(db_obj, field)) for field in PLACEMENT_FIELDS}
            # A new section or department replaces the units it implies
            if "section_id" in update_data and "department_id" not in update_data:
                placement["department_id"] = None
            if ("section_id" in update_data or "department_id" in update_data) and "direction_id" not in update_data:
                placement["direction_id"] = None
            (
                update_data["direction_id"], update_data["department_id"], update_data["section_id"]
            ) = resolve_placement(db, **placement)

        return super().update(db, db_obj=db_obj, obj_in=update_data)

    def deactivate(self, db: Session, *, db_obj: User) -> User:
        """Soft delete. Does NOT call db.commit()."""
        db_obj.is_active = False
        db.add(db_obj)
        logger.warning(f"User '{db_obj.username}' (ID: {db_obj.id}) prepared for deactivation.")
        return db_obj

    def authenticate(self, db: Session, *, username: str, password: str) -> Optional[User]:
        """
        Checks username and password. Inactive users are returned so the
        endpoint can answer with a specific message.
        """
        user = self.get_by_username(db, username=username)
        if not user:
            logger.warning(f"Failed login: user '{username}' not found.")
            return None
        if not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login: wrong password for user '{username}'.")
            return None
        return user

    def handle_successful_login(self, db: Session, *, user: User) -> None:
        """Stamps `last_login`. Does NOT call db.commit()."""
        user.last_login = datetime.now(timezone.utc)
        db.add(user)


user_service = UserService(User)
