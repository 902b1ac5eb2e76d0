import sys
from os.path import abspath, dirname

root_dir = dirname(dirname(abspath(__file__)))
sys.path.append(root_dir)

from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.services.user import user_service
from app.services.role import role_service
from app.schemas.user import UserCreate
from app.schemas.enums import UserRoleEnum
from app.core.config import settings
from app.core.rbac_matrix import get_rbac_matrix


def create_superuser():
    """
    Seeds the RBAC tables from the matrix and creates the first org-admin
    from the SUPERUSER_* environment variables.
    """
    db: Session = SessionLocal()

    print("--- Creating the initial org-admin ---")

    try:
        summary = role_service.seed_from_matrix(db, matrix=get_rbac_matrix())
        db.commit()
        print(f"RBAC tables ready: {summary}")

        admin_username = settings.SUPERUSER_USERNAME
        admin_email = settings.SUPERUSER_EMAIL
        admin_password = settings.SUPERUSER_PASSWORD

        if not admin_password:
            print("!!! ERROR: set SUPERUSER_PASSWORD in your .env file. Exiting. !!!")
            return

        superuser = user_service.get_by_username(db, username=admin_username)
        if superuser:
            print(f"User '{admin_username}' already exists (role: {superuser.role}).")
            return

        print(f"Creating org-admin '{admin_username}'")
        superuser_in = UserCreate(
            username=admin_username,
            email=admin_email,
            password=admin_password,
            full_name="Administrator",
            role=UserRoleEnum.ORG_ADMIN,
        )
        user_service.create(db, obj_in=superuser_in)
        db.commit()
        print("Org-admin created.")
    except Exception:
        db.rollback()
        raise
    finally:
        print("--- Done ---")
        db.close()


if __name__ == "__main__":
    create_superuser()
