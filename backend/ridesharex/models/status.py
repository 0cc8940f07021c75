import enum

class EntityKind(str, enum.Enum):
    USER = "user"
    LISTING = "listing"

class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class ActorRole(str, enum.Enum):
    RENTER = "renter"
    HOST = "host"
    ADMIN = "admin"
