from enum import Enum


ACCESS_CODE_LENGTH = 6

class RoleEnum(str, Enum):
    ADMIN = "admin"
    FACILITATOR = "facilitator"
    LEARNER = "learner"

class AccessCodeTypeEnum(str, Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"

class AccessCodeErrorEnum(str, Enum):
    ACCESS_CODE_DISABLED = "access_code_disabled"
    NO_CODE_CONFIGURED = "no_code_configured"
    CODE_EXPIRED = "code_expired"
    INCORRECT_CODE = "incorrect_code"

class EnrollmentStatusEnum(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    COMPLETED = "completed"

class DownloadStatusEnum(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"
    REVOKED = "revoked"

class EncryptionAlgorithmEnum(str, Enum):
    AES_256_CBC = "AES-256-CBC"
