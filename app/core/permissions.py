# =================================================================
# System roles
# =================================================================
# Values accepted in User.role. The role defaults for each of them
# live in rbac_matrix.json.
# =================================================================

ORG_ADMIN_ROLE = "org-admin"
ADMIN_ROLE = "admin"
SUPER_ADMIN_ROLE = "super-admin"
PROVIDER_ADMIN_ROLE = "provider-admin"
CLIENT_ADMIN_ROLE = "client-admin"
ORG_MANAGER_ROLE = "org-manager"
GERENTE_ROLE = "gerente"
SUPERVISOR_ROLE = "supervisor"
AGENT_ROLE = "agent"
AGENTE_ROLE = "agente"
TECHNICIAN_ROLE = "technician"
CLIENT_MANAGER_ROLE = "client-manager"
CLIENT_USER_ROLE = "client-user"

ALL_ROLES = (
    ORG_ADMIN_ROLE, ADMIN_ROLE, SUPER_ADMIN_ROLE, PROVIDER_ADMIN_ROLE,
    CLIENT_ADMIN_ROLE, ORG_MANAGER_ROLE, GERENTE_ROLE, SUPERVISOR_ROLE,
    AGENT_ROLE, AGENTE_ROLE, TECHNICIAN_ROLE, CLIENT_MANAGER_ROLE,
    CLIENT_USER_ROLE,
)

CLIENT_ROLES = (CLIENT_ADMIN_ROLE, CLIENT_MANAGER_ROLE, CLIENT_USER_ROLE)

GLOBAL_WILDCARD = "*"


# =================================================================
# Permission tokens used by the API routes
# =================================================================

# --- Users and organizational structure ---
PERM_USERS_VIEW = "users.view"
PERM_USERS_CREATE = "users.create"
PERM_USERS_UPDATE = "users.update"
PERM_USERS_DELETE = "users.delete"
PERM_CLIENT_USERS_VIEW = "client_users.view"
PERM_CLIENT_USERS_CREATE = "client_users.create"
PERM_CLIENT_USERS_MANAGE = "client_users.update"

PERM_CLIENTS_VIEW = "clients.view"
PERM_CLIENTS_CREATE = "clients.create"
PERM_CLIENTS_UPDATE = "clients.update"
PERM_CLIENTS_DELETE = "clients.delete"

PERM_DIRECTIONS_VIEW = "directions.view"
PERM_DIRECTIONS_CREATE = "directions.create"
PERM_DIRECTIONS_UPDATE = "directions.update"
PERM_DIRECTIONS_DELETE = "directions.delete"

PERM_DEPARTMENTS_VIEW = "departments.view"
PERM_DEPARTMENTS_CREATE = "departments.create"
PERM_DEPARTMENTS_UPDATE = "departments.update"
PERM_DEPARTMENTS_DELETE = "departments.delete"

PERM_SECTIONS_VIEW = "sections.view"
PERM_SECTIONS_CREATE = "sections.create"
PERM_SECTIONS_UPDATE = "sections.update"
PERM_SECTIONS_DELETE = "sections.delete"

# --- Hours bank ---
PERM_HOURS_BANK_VIEW = "hours_bank.view"
PERM_HOURS_BANK_MANAGE = "hours_bank.manage"
PERM_HOURS_BANK_CONSUME = "hours_bank.consume"

# --- Inventory ---
PERM_ASSETS_VIEW = "assets.view"
PERM_ASSETS_CREATE = "assets.create"
PERM_ASSETS_UPDATE = "assets.update"
PERM_ASSETS_DELETE = "assets.delete"
PERM_LICENSES_VIEW = "licenses.view"
PERM_LICENSES_CREATE = "licenses.create"
PERM_LICENSES_UPDATE = "licenses.update"
PERM_LICENSES_DELETE = "licenses.delete"

# --- Catalog ---
PERM_CATALOG_VIEW = "catalog.view"
PERM_CATALOG_MANAGE = "catalog.manage"

# --- RBAC administration ---
PERM_ROLES_VIEW = "roles.view"
PERM_SETTINGS_MANAGE_ROLES = "settings.manage_roles"
