import logging
from typing import List, Optional, Tuple, Type
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select, func
from fastapi import HTTPException, status

from app.core.errors import ValidationError
from app.models.direction import Direction
from app.models.department import Department
from app.models.section import Section
from app.models.user import User
from app.schemas.organization import (
    DirectionCreate, DirectionUpdate,
    DepartmentCreate, DepartmentUpdate,
    SectionCreate, SectionUpdate,
)

from .base_service import BaseService

logger = logging.getLogger(__name__)


def _count(db: Session, model: Type, *criteria) -> int:
    return db.execute(select(func.count()).select_from(model).where(*criteria)).scalar_one()


def _ensure_deletable(label: str, obj_id: UUID, blockers: List[Tuple[str, int]]) -> None:
    found = [f"{count} {what}" for what, count in blockers if count]
    if found:
        logger.warning(f"Delete of {label} {obj_id} refused, still referenced by: {', '.join(found)}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"The {label} cannot be deleted while it has {', '.join(found)}.",
        )


class _UnitQueryMixin:
    model: Type

    def get_multi_filtered(
        self, db: Session, *, client_id: Optional[UUID] = None, is_active: Optional[bool] = None,
        skip: int = 0, limit: int = 100, **parents: Optional[UUID]
    ) -> List:
        statement = select(self.model)
        if client_id is not None:
            statement = statement.where(self.model.client_id == client_id)
        if is_active is not None:
            statement = statement.where(self.model.is_active == is_active)
        for column, value in parents.items():
            if value is not None:
                statement = statement.where(getattr(self.model, column) == value)
        statement = statement.order_by(self.model.name).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())


class DirectionService(_UnitQueryMixin, BaseService[Direction, DirectionCreate, DirectionUpdate]):

    def remove(self, db: Session, *, id: UUID) -> Direction:
        direction = self.get_or_404(db, id=id)
        _ensure_deletable("direction", id, [
            ("departments", _count(db, Department, Department.direction_id == id)),
            ("users", _count(db, User, User.direction_id == id)),
        ])
        db.delete(direction)
        logger.warning(f"Direction {id} prepared for deletion")
        return direction


class DepartmentService(_UnitQueryMixin, BaseService[Department, DepartmentCreate, DepartmentUpdate]):

    def _check_direction(self, db: Session, direction_id: Optional[UUID]) -> None:
        if direction_id is not None and db.get(Direction, direction_id) is None:
            raise ValidationError(f"Direction {direction_id} does not exist.")

    def create(self, db: Session, *, obj_in: DepartmentCreate) -> Department:
        self._check_direction(db, obj_in.direction_id)
        return super().create(db, obj_in=obj_in)

    def update(self, db: Session, *, db_obj: Department, obj_in: DepartmentUpdate) -> Department:
        update_data = obj_in.model_dump(exclude_unset=True)
        if "direction_id" in update_data:
            self._check_direction(db, update_data["direction_id"])
        return super().update(db, db_obj=db_obj, obj_in=update_data)

    def remove(self, db: Session, *, id: UUID) -> Department:
        department = self.get_or_404(db, id=id)
        _ensure_deletable("department", id, [
            ("sections", _count(db, Section, Section.department_id == id)),
            ("users", _count(db, User, User.department_id == id)),
        ])
        db.delete(department)
        logger.warning(f"Department {id} prepared for deletion")
        return department


class SectionService(_UnitQueryMixin, BaseService[Section, SectionCreate, SectionUpdate]):

    def _check_department(self, db: Session, department_id: Optional[UUID]) -> None:
        if department_id is None:
            raise ValidationError("A section must belong to a department.")
        if db.get(Department, department_id) is None:
            raise ValidationError(f"Department {department_id} does not exist.")

    def create(self, db: Session, *, obj_in: SectionCreate) -> Section:
        self._check_department(db, obj_in.department_id)
        return super().create(db, obj_in=obj_in)

    def update(self, db: Session, *, db_obj: Section, obj_in: SectionUpdate) -> Section:
        update_data = obj_in.model_dump(exclude_unset=True)
        if "department_id" in update_data:
            self._check_department(db, update_data["department_id"])
        return super().update(db, db_obj=db_obj, obj_in=update_data)

    def remove(self, db: Session, *, id: UUID) -> Section:
        section = self.get_or_404(db, id=id)
        _ensure_deletable("section", id, [
            ("users", _count(db, User, User.section_id == id)),
        ])
        db.delete(section)
        logger.warning(f"Section {id} prepared for deletion")
        return section


def resolve_placement(
    db: Session,
    *,
    direction_id: Optional[UUID] = None,
    department_id: Optional[UUID] = None,
    section_id: Optional[UUID] = None,
) -> Tuple[Optional[UUID], Optional[UUID], Optional[UUID]]:
    """
    Completes and checks a (direction, department, section) placement.

    A section implies its department and a department implies its direction;
    an explicit value that contradicts the implied one is a ValidationError.
    """
    if section_id is not None:
        section = db.get(Section, section_id)
        if section is None:
            raise ValidationError(f"Section {section_id} does not exist.")
        if department_id is not None and department_id != section.department_id:
            raise ValidationError("The section does not belong to the given department.")
        department_id = section.department_id

    if department_id is not None:
        department = db.get(Department, department_id)
        if department is None:
            raise ValidationError(f"Department {department_id} does not exist.")
        if department.direction_id is not None:
            if direction_id is not None and direction_id != department.direction_id:
                raise ValidationError("The department does not belong to the given direction.")
            direction_id = department.direction_id

    if direction_id is not None and db.get(Direction, direction_id) is None:
        raise ValidationError(f"Direction {direction_id} does not exist.")

    return direction_id, department_id, section_id


direction_service = DirectionService(Direction)
department_service = DepartmentService(Department)
section_service = SectionService(Section)
