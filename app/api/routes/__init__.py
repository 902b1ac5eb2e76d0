from fastapi import APIRouter

from . import auth, users, clients, organization, hours_banks, client_hours
from . import notifications, assets, licenses, catalog, rbac

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(clients.router, prefix="/clients", tags=["Clients"])
api_router.include_router(users.router, prefix="/client/users", tags=["Users"])
api_router.include_router(organization.directions_router, prefix="/client/directions", tags=["Organization"])
api_router.include_router(organization.departments_router, prefix="/client/departments", tags=["Organization"])
api_router.include_router(organization.sections_router, prefix="/client/sections", tags=["Organization"])
api_router.include_router(client_hours.router, prefix="/client/hours-banks", tags=["Client Hours"])
api_router.include_router(hours_banks.router, prefix="/hours-banks", tags=["Hours Banks"])
api_router.include_router(hours_banks.transactions_router, prefix="/hours-transactions", tags=["Hours Banks"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(assets.router, prefix="/assets", tags=["Assets"])
api_router.include_router(licenses.router, prefix="/licenses", tags=["Licenses"])
api_router.include_router(catalog.router, prefix="/catalog", tags=["Catalog"])
api_router.include_router(rbac.router, prefix="/rbac", tags=["RBAC"])
