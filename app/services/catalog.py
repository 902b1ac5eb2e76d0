import logging
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select, func, or_
from fastapi import HTTPException, status

from app.core.errors import ValidationError
from app.models.catalog_category import CatalogCategory
from app.models.catalog_item import CatalogItem
from app.models.department import Department
from app.models.section import Section
from app.schemas.enums import CatalogItemTypeEnum
from app.schemas.catalog import (
    CatalogCategoryCreate, CatalogCategoryUpdate, CatalogCategoryTree,
    CatalogItemCreate, CatalogItemUpdate, CatalogItemRouting,
)

from .base_service import BaseService

logger = logging.getLogger(__name__)

ROUTING_FIELDS = ("default_direction_id", "default_department_id", "default_section_id")


def _has_routing(obj) -> bool:
    return any(getattr(obj, field) is not None for field in ROUTING_FIELDS)


class CatalogCategoryService(BaseService[CatalogCategory, CatalogCategoryCreate, CatalogCategoryUpdate]):
    """
    Category tree of the service catalog.
    """

    def get_multi_filtered(
        self, db: Session, *, parent_id: Optional[UUID] = None, roots_only: bool = False,
        is_active: Optional[bool] = None, skip: int = 0, limit: int = 100
    ) -> List[CatalogCategory]:
        statement = select(self.model)
        if roots_only:
            statement = statement.where(self.model.parent_id.is_(None))
        elif parent_id is not None:
            statement = statement.where(self.model.parent_id == parent_id)
        if is_active is not None:
            statement = statement.where(self.model.is_active == is_active)
        statement = statement.order_by(self.model.level, self.model.order, self.model.name).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())

    def _parent_level(self, db: Session, parent_id: Optional[UUID]) -> int:
        if parent_id is None:
            return 0
        parent = self.get(db, id=parent_id)
        if parent is None:
            raise ValidationError(f"Parent category {parent_id} does not exist.")
        return parent.level

    def validate_hierarchy(self, db: Session, *, category_id: UUID, parent_id: Optional[UUID]) -> None:
        """Rejects a parent that is the category itself or one of its descendants."""
        current_id = parent_id
        visited = set()
        while current_id is not None:
            if current_id == category_id:
                raise ValidationError("Circular hierarchy: a category cannot be its own ancestor.")
            if current_id in visited:
                raise ValidationError("The category tree already contains a loop.")
            visited.add(current_id)
            parent = self.get(db, id=current_id)
            current_id = parent.parent_id if parent else None

    def _relevel_descendants(self, db: Session, category: CatalogCategory) -> None:
        pending = [category]
        while pending:
            node = pending.pop()
            children = db.execute(select(self.model).where(self.model.parent_id == node.id)).scalars().all()
            for child in children:
                child.level = node.level + 1
                db.add(child)
                pending.append(child)

    def create(self, db: Session, *, obj_in: CatalogCategoryCreate) -> CatalogCategory:
        level = self._parent_level(db, obj_in.parent_id) + 1
        db_obj = self.model(**obj_in.model_dump(), level=level)
        db.add(db_obj)
        logger.info(f"Catalog category '{db_obj.name}' prepared for creation at level {level}.")
        return db_obj

    def update(self, db: Session, *, db_obj: CatalogCategory, obj_in: CatalogCategoryUpdate) -> CatalogCategory:
        update_data = obj_in.model_dump(exclude_unset=True)
        parent_changed = "parent_id" in update_data and update_data["parent_id"] != db_obj.parent_id
        if parent_changed:
            self.validate_hierarchy(db, category_id=db_obj.id, parent_id=update_data["parent_id"])
            update_data["level"] = self._parent_level(db, update_data["parent_id"]) + 1
        db_obj = super().update(db, db_obj=db_obj, obj_in=update_data)
        if parent_changed:
            self._relevel_descendants(db, db_obj)
        return db_obj

    def remove(self, db: Session, *, id: UUID) -> CatalogCategory:
        category = self.get_or_404(db, id=id)
        children = db.execute(
            select(func.count()).select_from(CatalogCategory).where(CatalogCategory.parent_id == id)
        ).scalar_one()
        items = db.execute(
            select(func.count()).select_from(CatalogItem).where(CatalogItem.category_id == id)
        ).scalar_one()
        if children or items:
            logger.warning(f"Delete of catalog category {id} refused: {children} subcategories, {items} items.")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="The category still has subcategories or items.",
            )
        db.delete(category)
        logger.warning(f"Catalog category {id} prepared for deletion")
        return category

    def get_tree(self, db: Session, *, active_only: bool = False) -> List[CatalogCategoryTree]:
        """Whole tree in one query, children sorted by (order, name)."""
        statement = select(self.model).order_by(self.model.order, self.model.name)
        if active_only:
            statement = statement.where(self.model.is_active.is_(True))
        categories = list(db.execute(statement).scalars().all())

        nodes: Dict[UUID, CatalogCategoryTree] = {
            c.id: CatalogCategoryTree(
                id=c.id, name=c.name, level=c.level, parent_id=c.parent_id, order=c.order, is_active=c.is_active
            )
            for c in categories
        }
        roots: List[CatalogCategoryTree] = []
        for category in categories:
            node = nodes[category.id]
            parent = nodes.get(category.parent_id) if category.parent_id else None
            if parent is not None:
                parent.children.append(node)
            else:
                # Inactive parents are filtered out; their active children surface as roots
                roots.append(node)
        return roots


class CatalogItemService(BaseService[CatalogItem, CatalogItemCreate, CatalogItemUpdate]):
    """
    Requestable catalog items, their routing and approval rule.
    """

    def get_multi_filtered(
        self,
        db: Session,
        *,
        category_id: Optional[UUID] = None,
        item_type: Optional[CatalogItemTypeEnum] = None,
        is_active: Optional[bool] = None,
        public_only: bool = False,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[CatalogItem]:
        statement = select(self.model)
        if category_id is not None:
            statement = statement.where(self.model.category_id == category_id)
        if item_type is not None:
            statement = statement.where(self.model.item_type == item_type.value)
        if is_active is not None:
            statement = statement.where(self.model.is_active == is_active)
        if public_only:
            statement = statement.where(self.model.is_public.is_(True))
        if search:
            pattern = f"%{search}%"
            statement = statement.where(or_(self.model.name.ilike(pattern), self.model.short_description.ilike(pattern)))
        statement = statement.order_by(self.model.order, self.model.name).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())

    def _check_category(self, db: Session, category_id: UUID) -> None:
        if db.get(CatalogCategory, category_id) is None:
            raise ValidationError(f"Catalog category {category_id} does not exist.")

    def create(self, db: Session, *, obj_in: CatalogItemCreate) -> CatalogItem:
        self._check_category(db, obj_in.category_id)
        data = obj_in.model_dump()
        data["item_type"] = obj_in.item_type.value
        data["default_priority"] = obj_in.default_priority.value
        db_obj = self.model(**data)
        db.add(db_obj)
        logger.info(f"Catalog item '{db_obj.name}' ({db_obj.item_type}) prepared for creation.")
        return db_obj

    def update(self, db: Session, *, db_obj: CatalogItem, obj_in: CatalogItemUpdate) -> CatalogItem:
        update_data = obj_in.model_dump(exclude_unset=True)
        for field in ("item_type", "default_priority"):
            if update_data.get(field) is not None:
                update_data[field] = update_data[field].value
        if update_data.get("category_id") is not None:
            self._check_category(db, update_data["category_id"])
        return super().update(db, db_obj=db_obj, obj_in=update_data)

    @staticmethod
    def requires_approval(item: CatalogItem) -> bool:
        """Incidents flagged to skip approval never wait for it."""
        if item.item_type == CatalogItemTypeEnum.INCIDENT.value and item.skip_approval_for_incidents:
            return False
        return bool(item.requires_approval)

    def _routing_source(self, item: CatalogItem) -> Tuple[Optional[object], Optional[str]]:
        if _has_routing(item):
            return item, "item"
        category = item.category
        if category is not None and _has_routing(category):
            return category, "category"
        ancestor = category.parent if category is not None else None
        visited = set()
        while ancestor is not None and ancestor.id not in visited:
            if _has_routing(ancestor):
                return ancestor, "parent_category"
            visited.add(ancestor.id)
            ancestor = ancestor.parent
        return None, None

    def resolve_routing(self, db: Session, *, item: CatalogItem) -> CatalogItemRouting:
        """
        Routing defaults of the first of item, category, ancestor categories
        that declares any; missing upper levels are completed from the lower ones.
        """
        source, label = self._routing_source(item)
        direction_id = department_id = section_id = None
        if source is not None:
            direction_id = source.default_direction_id
            department_id = source.default_department_id
            section_id = source.default_section_id

        if section_id is not None and department_id is None:
            section = db.get(Section, section_id)
            department_id = section.department_id if section else None
        if department_id is not None and direction_id is None:
            department = db.get(Department, department_id)
            direction_id = department.direction_id if department else None

        return CatalogItemRouting(
            item_id=item.id,
            item_type=item.item_type,
            default_priority=item.default_priority,
            direction_id=direction_id,
            department_id=department_id,
            section_id=section_id,
            routing_source=label,
            requires_approval=self.requires_approval(item),
        )


catalog_category_service = CatalogCategoryService(CatalogCategory)
catalog_item_service = CatalogItemService(CatalogItem)
