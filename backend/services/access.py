"""
Access control evaluation.

A ``Principal`` is resolved once per request from the authenticated user.
``resolve_scope`` turns it into an ``AccessScope`` describing which
divisions' records it may see; ``apply_access_filter`` applies that scope to a
query by walking relationships from the queried entity to the owning user.

Rules:
    * superadmin sees everything
    * both partition tokens granted -> unrestricted
    * exactly one token -> only records whose owning user has that division
    * no recognized token -> nothing (fails closed)
"""
import enum
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from sqlalchemy import false

from models.types import AccessToken
from models.users import Role, User
from services.errors import Forbidden


@dataclass(frozen=True)
class Principal:
    id: int
    role: Role
    divisi: Optional[str] = None
    data_access: FrozenSet[AccessToken] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            id=user.id,
            role=Role(user.role),
            divisi=user.divisi,
            data_access=AccessToken.parse(user.data_access),
        )


class ScopeKind(str, enum.Enum):
    UNRESTRICTED = "unrestricted"
    DIVISIONS = "divisions"
    DENY = "deny"


@dataclass(frozen=True)
class AccessScope:
    kind: ScopeKind
    divisions: FrozenSet[str] = frozenset()

    @classmethod
    def unrestricted(cls) -> "AccessScope":
        return cls(ScopeKind.UNRESTRICTED)

    @classmethod
    def deny(cls) -> "AccessScope":
        return cls(ScopeKind.DENY)

    @classmethod
    def for_tokens(cls, tokens) -> "AccessScope":
        tokens = AccessToken.parse(tokens)
        if not tokens:
            return cls.deny()
        return cls(ScopeKind.DIVISIONS, frozenset(t.division for t in tokens))

    def allows_division(self, divisi: Optional[str]) -> bool:
        if self.kind is ScopeKind.UNRESTRICTED:
            return True
        if self.kind is ScopeKind.DENY:
            return False
        return divisi in self.divisions


def resolve_scope(principal: Principal) -> AccessScope:
    if principal.role.is_superadmin:
        return AccessScope.unrestricted()

    tokens = principal.data_access
    if tokens >= set(AccessToken):
        return AccessScope.unrestricted()
    if len(tokens) == 1:
        return AccessScope.for_tokens(tokens)
    return AccessScope.deny()


def has_multiple_access(principal: Principal) -> bool:
    return len(principal.data_access) >= 2


def narrow_scope(principal: Principal, division: Optional[AccessToken]) -> AccessScope:
    """
    Scope for a view optionally pinned to one division.

    A pinned division must be reachable by the principal; otherwise the
    request is refused rather than silently widened or emptied.
    """
    scope = resolve_scope(principal)
    if division is None:
        return scope
    if not scope.allows_division(division.division):
        raise Forbidden(f"No access to {division.division}")
    return AccessScope.for_tokens({division})


def apply_access_filter(query, scope: AccessScope, *path):
    """
    Restrict ``query`` to rows whose owning user is inside ``scope``.

    ``path`` lists the relationships leading from the queried entity to the
    owning ``User``, e.g. ``(Order.user,)`` or ``(Payment.order, Order.user)``.
    An empty path filters ``User`` rows directly.
    """
    if scope.kind is ScopeKind.UNRESTRICTED:
        return query
    if scope.kind is ScopeKind.DENY:
        return query.filter(false())

    criterion = User.divisi.in_(sorted(scope.divisions))
    for relation in reversed(path):
        criterion = relation.has(criterion)
    return query.filter(criterion)


def require_staff(principal: Principal) -> None:
    if not principal.role.is_staff:
        raise Forbidden("Admin access required")


def require_user_admin(principal: Principal) -> None:
    if not principal.role.can_manage_users:
        raise Forbidden("Superadmin access required")


def require_settings_admin(principal: Principal) -> None:
    if not principal.role.can_manage_settings:
        raise Forbidden("Superadmin access required")
