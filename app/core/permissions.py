from dataclasses import dataclass
from typing import Optional

from app.core.exceptions import Forbidden

# Guest owner ids live apart from user UUIDs so a guest header can never
# name a registered account
GUEST_OWNER_PREFIX = "guest:"


@dataclass(frozen=True)
class Caller:
    """
    The identity an operation runs on behalf of.

    ``id`` is opaque: a registered user's UUID as a string, or a
    client-supplied guest id under ``GUEST_OWNER_PREFIX``. Operators are
    registered users with ``is_admin``.
    """
    id: str
    is_operator: bool = False
    is_guest: bool = False

    @classmethod
    def guest(cls, guest_id: str) -> "Caller":
        return cls(id=f"{GUEST_OWNER_PREFIX}{guest_id}", is_guest=True)


class PermissionChecker:
    """
    Ownership and operator checks for storefront resources.
    """

    def __init__(self, caller: Caller):
        self.caller = caller

    def is_operator(self) -> bool:
        return self.caller.is_operator

    def owns(self, owner_id: Optional[str]) -> bool:
        return owner_id is not None and owner_id == self.caller.id

    def can_view_order(self, owner_id: str) -> bool:
        """Owners see their own orders; operators see all of them."""
        return self.owns(owner_id) or self.is_operator()

    def require_operator(self) -> None:
        if not self.is_operator():
            raise Forbidden("Not authorized as an operator")

    def require_owner(self, owner_id: str, action: str = "access") -> None:
        """Strict ownership, no operator override."""
        if not self.owns(owner_id):
            raise Forbidden(f"Not authorized to {action} this order")
