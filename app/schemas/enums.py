from enum import Enum


class UserRoleEnum(str, Enum):
    """Values accepted in `users.role`."""
    ORG_ADMIN = "org-admin"
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"
    PROVIDER_ADMIN = "provider-admin"
    CLIENT_ADMIN = "client-admin"
    ORG_MANAGER = "org-manager"
    GERENTE = "gerente"
    SUPERVISOR = "supervisor"
    AGENT = "agent"
    AGENTE = "agente"
    TECHNICIAN = "technician"
    CLIENT_MANAGER = "client-manager"
    CLIENT_USER = "client-user"


class HoursTransactionTypeEnum(str, Enum):
    """Values matching the CHECK constraint of `hours_bank_transactions`."""
    ADDITION = "addition"
    CONSUMPTION = "consumption"


class AssetTypeEnum(str, Enum):
    DESKTOP = "desktop"
    LAPTOP = "laptop"
    SERVER = "server"
    TABLET = "tablet"
    SMARTPHONE = "smartphone"
    PRINTER = "printer"
    SCANNER = "scanner"
    NETWORK_DEVICE = "network_device"
    MONITOR = "monitor"
    OTHER = "other"


class AssetStatusEnum(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"
    LOST = "lost"
    STOLEN = "stolen"


class LicenseTypeEnum(str, Enum):
    PERPETUAL = "perpetual"
    SUBSCRIPTION = "subscription"
    TRIAL = "trial"
    VOLUME = "volume"
    OEM = "oem"
    ACADEMIC = "academic"
    NFR = "nfr"


class LicenseStatusEnum(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    TRIAL = "trial"


class BillingCycleEnum(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"


class CatalogItemTypeEnum(str, Enum):
    """Governs ticket routing and the approval rule of a catalog item."""
    INCIDENT = "incident"
    SERVICE = "service"
    SUPPORT = "support"
    REQUEST = "request"


class PriorityEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationTypeEnum(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"
    HOURS_BANK_LOW = "hours_bank_low"
    HOURS_BANK_EXPIRED = "hours_bank_expired"
    SYSTEM = "system"
