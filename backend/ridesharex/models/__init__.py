from .status import EntityKind, ApprovalStatus, ActorRole
from .user import User
from .listing import Listing
from .transition import TransitionRecord
from .notification import Notification
