"""
Value objects for the quote domain.

Enumerations and small immutable models shared by the quote aggregate,
audit trail and notification layer.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class QuoteStatus(str, Enum):
    """Lifecycle status of a quote."""
    PENDING = "PENDING"
    REVIEWING = "REVIEWING"
    SENT = "SENT"
    ARTWORK_PENDING = "ARTWORK_PENDING"
    ARTWORK_APPROVED = "ARTWORK_APPROVED"
    ARTWORK_DECLINED = "ARTWORK_DECLINED"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    ARCHIVED = "ARCHIVED"


class LineItemType(str, Enum):
    """Kind of priced row on a quote."""
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"
    CUSTOM = "CUSTOM"
    SETUP_FEE = "SETUP_FEE"
    SHIPPING = "SHIPPING"
    DISCOUNT = "DISCOUNT"


class ActorType(str, Enum):
    """Who performed an action on a quote."""
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"
    SYSTEM = "SYSTEM"


class UserRole(str, Enum):
    """Internal staff roles."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"


class CustomerDecision(str, Enum):
    """Customer response on an approval link."""
    APPROVE = "approve"
    DECLINE = "decline"

    @property
    def approved(self) -> bool:
        return self is CustomerDecision.APPROVE


class ArtworkVersionStatus(str, Enum):
    """Review state of one artwork version."""
    PENDING = "PENDING"
    SENT = "SENT"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


class Actor(BaseModel):
    """
    The party performing a quote mutation.

    Customers acting through an approval link carry no internal identity,
    only the email the quote was sent to.
    """
    model_config = ConfigDict(frozen=True)

    actor_type: ActorType = ActorType.SYSTEM
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None

    @classmethod
    def system(cls) -> "Actor":
        return cls(actor_type=ActorType.SYSTEM)

    @classmethod
    def customer(cls, email: Optional[str] = None, name: Optional[str] = None) -> "Actor":
        return cls(actor_type=ActorType.CUSTOMER, email=email, name=name)

    @classmethod
    def staff(
        cls,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: UserRole = UserRole.ADMIN,
    ) -> "Actor":
        return cls(actor_type=ActorType.ADMIN, id=user_id, name=name, email=email, role=role)

    @property
    def description(self) -> str:
        """Short label used in audit descriptions."""
        if self.actor_type == ActorType.CUSTOMER:
            return "customer"
        return self.name or "system"

    def has_role(self, *roles: UserRole) -> bool:
        return self.role is not None and self.role in roles


class ServiceOptions(BaseModel):
    """Decoration options for SERVICE line items (embroidery, print, ...)."""
    model_config = ConfigDict(extra="allow")

    colors: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    size: Optional[str] = None
    material: Optional[str] = None
    notes: Optional[str] = None


class Customer(BaseModel):
    """A stored customer record referenced by ``Quote.customer_id``."""
    id: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    company_name: Optional[str] = None
    phone: Optional[str] = None


class StaffUser(BaseModel):
    """An internal user that can own quotes."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: UserRole = UserRole.ADMIN
