import sys
import argparse
from os.path import abspath, dirname
from getpass import getpass
from uuid import UUID

root_dir = dirname(dirname(abspath(__file__)))
sys.path.append(root_dir)

from fastapi import HTTPException

from app.db.session import SessionLocal
from app.core.errors import ServiceDeskError
from app.core.permissions import ALL_ROLES
from app.core.rbac_matrix import get_rbac_matrix
from app.services import user_service, role_service
from app.schemas.user import UserCreate
from app.schemas.enums import UserRoleEnum


# --- Management commands ---

def seed_rbac(db):
    """Creates the backend permissions and one system role per matrix role."""
    matrix = get_rbac_matrix()
    print(f"Seeding RBAC tables from matrix v{matrix.version}...")
    try:
        summary = role_service.seed_from_matrix(db, matrix=matrix)
        db.commit()
    except Exception:
        db.rollback()
        raise
    print(f"OK: {summary['permissions_created']} permission(s) and {summary['roles_created']} role(s) created, "
          f"{summary['roles_synchronised']} role(s) synchronised.")


def create_user(db, username: str, email: str, role: str, client_id: str = None):
    """Creates a user, asking for the password on the terminal."""
    print(f"Creating user '{username}' with role '{role}'")
    if user_service.get_by_username(db, username=username):
        print(f"Error: user '{username}' already exists.")
        return
    password = getpass("Password for the new user: ")
    if not password or len(password) < 8:
        print("Error: the password must have at least 8 characters.")
        return
    try:
        user_in = UserCreate(
            username=username,
            email=email,
            password=password,
            role=UserRoleEnum(role),
            client_id=UUID(client_id) if client_id else None,
        )
        user_service.create(db, obj_in=user_in)
        db.commit()
        print(f"User '{username}' created.")
    except (ServiceDeskError, HTTPException) as e:
        db.rollback()
        print(f"Error: {getattr(e, 'detail', e)}")
    except Exception:
        db.rollback()
        raise


def deactivate_user(db, username: str):
    """Soft-deletes a user by username."""
    user = user_service.get_by_username(db, username=username)
    if not user:
        print(f"No user named '{username}'.")
        return
    try:
        user_service.deactivate(db, db_obj=user)
        db.commit()
        print(f"User '{username}' deactivated.")
    except Exception:
        db.rollback()
        raise


def list_users(db):
    """Prints every user with its role and client."""
    print("\n--- USERS ---")
    all_users = user_service.get_multi_filtered(db, skip=0, limit=1000)
    if not all_users:
        print("-> No users found.")
        return
    print(f"{'ROLE':<16} | {'USERNAME':<25} | {'ACTIVE':<6} | {'CLIENT'}")
    print("-" * 80)
    for user in all_users:
        client_name = user.client.name if user.client else "-"
        print(f"{user.role:<16} | {user.username:<25} | {str(user.is_active):<6} | {client_name}")
    print("-" * 80)
    print(f"Total: {len(all_users)} users.")


def list_roles(db):
    """Prints the backend roles and how many permissions each one carries."""
    print("\n--- ROLES ---")
    roles = role_service.get_multi_ordered(db)
    if not roles:
        print("-> No roles found. Run 'seed-rbac' first.")
        return
    for role in roles:
        print(f"{role.name:<16} | {len(role.permissions):>3} permission(s) | {role.description or ''}")
    print(f"Total: {len(roles)} roles.")


# --- Command line interface ---

def main():
    parser = argparse.ArgumentParser(description="Service desk management tool.")
    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    subparsers.add_parser("seed-rbac", help="Create the RBAC permissions and roles from the matrix.")

    parser_create = subparsers.add_parser("create-user", help="Create a user.")
    parser_create.add_argument("--username", type=str, required=True)
    parser_create.add_argument("--email", type=str, default=None)
    parser_create.add_argument("--role", type=str, required=True, choices=ALL_ROLES)
    parser_create.add_argument("--client-id", type=str, default=None, help="Required for client roles.")

    parser_deactivate = subparsers.add_parser("deactivate-user", help="Deactivate a user.")
    parser_deactivate.add_argument("--username", type=str, required=True)

    subparsers.add_parser("list-users", help="List the users.")
    subparsers.add_parser("list-roles", help="List the backend roles.")

    args = parser.parse_args()
    db = SessionLocal()
    try:
        if args.command == "seed-rbac":
            seed_rbac(db)
        elif args.command == "create-user":
            create_user(db, username=args.username, email=args.email, role=args.role, client_id=args.client_id)
        elif args.command == "deactivate-user":
            deactivate_user(db, username=args.username)
        elif args.command == "list-users":
            list_users(db)
        elif args.command == "list-roles":
            list_roles(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
