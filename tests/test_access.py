"""
Tests for divisional access scopes and query filtering.
"""
import pytest

from conftest import make_user, make_restaurant, principal
from models.order import Order
from models.types import AccessToken, DataAccessType
from models.users import Role, User
from services import cart as cart_service
from services import orders as order_service
from services.access import (
    AccessScope,
    Principal,
    ScopeKind,
    apply_access_filter,
    has_multiple_access,
    narrow_scope,
    require_settings_admin,
    require_staff,
    require_user_admin,
    resolve_scope,
)
from services.checkout import checkout
from services.errors import Forbidden


def _principal(role, tokens=()):
    return Principal(id=1, role=role, data_access=AccessToken.parse(tokens))


class TestResolveScope:

    def test_superadmin_is_unrestricted_without_tokens(self):
        assert resolve_scope(_principal(Role.SUPERADMIN)).kind is ScopeKind.UNRESTRICTED

    def test_both_tokens_are_unrestricted(self):
        scope = resolve_scope(_principal(Role.ADMIN, ["crsd1", "crsd2"]))
        assert scope.kind is ScopeKind.UNRESTRICTED

    def test_single_token_filters_to_its_division(self):
        scope = resolve_scope(_principal(Role.ADMIN, ["crsd2"]))
        assert scope.kind is ScopeKind.DIVISIONS
        assert scope.divisions == frozenset({"CRSD 2"})

    def test_no_tokens_denies(self):
        assert resolve_scope(_principal(Role.ADMIN)).kind is ScopeKind.DENY

    def test_unknown_tokens_fail_closed(self):
        assert resolve_scope(_principal(Role.ADMIN, ["crsd9", "all"])).kind is ScopeKind.DENY

    def test_token_parsing_ignores_case_and_blanks(self):
        assert AccessToken.parse([" CRSD1 ", "crsd1"]) == frozenset({AccessToken.CRSD1})

    def test_has_multiple_access(self):
        assert has_multiple_access(_principal(Role.ADMIN, ["crsd1", "crsd2"]))
        assert not has_multiple_access(_principal(Role.ADMIN, ["crsd1"]))
        assert not has_multiple_access(_principal(Role.ADMIN, ["crsd1", "bogus"]))

    def test_allows_division(self):
        assert AccessScope.unrestricted().allows_division(None)
        assert not AccessScope.deny().allows_division("CRSD 1")
        scope = AccessScope.for_tokens(["crsd1"])
        assert scope.allows_division("CRSD 1")
        assert not scope.allows_division("CRSD 2")

    def test_narrow_scope_rejects_foreign_division(self):
        with pytest.raises(Forbidden):
            narrow_scope(_principal(Role.ADMIN, ["crsd1"]), AccessToken.CRSD2)

    def test_narrow_scope_pins_division(self):
        scope = narrow_scope(_principal(Role.SUPERADMIN), AccessToken.CRSD1)
        assert scope.divisions == frozenset({"CRSD 1"})


class TestRoleGuards:

    @pytest.mark.parametrize("role, staff, manages", [
        (Role.USER, False, False),
        (Role.ADMIN, True, False),
        (Role.SUPERADMIN, True, True),
    ])
    def test_capabilities(self, role, staff, manages):
        assert role.is_staff is staff
        assert role.can_manage_users is manages
        assert role.can_manage_settings is manages

    def test_admin_passes_only_the_staff_guard(self):
        admin = _principal(Role.ADMIN, ["crsd1", "crsd2"])
        require_staff(admin)
        with pytest.raises(Forbidden):
            require_user_admin(admin)
        with pytest.raises(Forbidden):
            require_settings_admin(admin)

    def test_superadmin_passes_every_guard(self):
        root = _principal(Role.SUPERADMIN)
        require_staff(root)
        require_user_admin(root)
        require_settings_admin(root)

    def test_customer_fails_the_staff_guard(self):
        with pytest.raises(Forbidden):
            require_staff(_principal(Role.USER))


class TestDataAccessColumn:

    def test_serializes_sorted_and_deduplicated(self):
        column = DataAccessType()
        assert column.process_bind_param(["crsd2", "crsd1", "CRSD2"], None) == '["crsd1", "crsd2"]'

    def test_empty_set_is_null(self):
        assert DataAccessType().process_bind_param(frozenset(), None) is None

    def test_unknown_tokens_dropped_on_load(self):
        loaded = DataAccessType().process_result_value('["crsd1", "legacy"]', None)
        assert loaded == frozenset({AccessToken.CRSD1})

    def test_round_trips_through_database(self, db):
        user = make_user(db, "admin@example.com", role=Role.ADMIN, data_access=["crsd2", "crsd1"])
        db.expire_all()
        assert db.get(User, user.id).data_access == frozenset(AccessToken)


# ============================================================================
# Filtering real queries
# ============================================================================


@pytest.fixture
def orders_by_division(db):
    restaurant, menus = make_restaurant(db)
    owners = [
        make_user(db, "one@example.com", divisi="CRSD 1"),
        make_user(db, "two@example.com", divisi="CRSD 2"),
        make_user(db, "none@example.com"),
    ]
    for owner in owners:
        cart_service.add_item(db, owner.id, restaurant_id=restaurant.id, menu_id=menus[0].id, quantity=1)
        checkout(db, owner.id)
    return owners


def _visible_owner_emails(db, user):
    query = apply_access_filter(db.query(Order), resolve_scope(principal(user)), Order.user)
    return sorted(order.user.email for order in query.all())


def test_single_token_sees_only_its_division(db, orders_by_division):
    admin = make_user(db, "a1@example.com", role=Role.ADMIN, data_access=["crsd1"])
    assert _visible_owner_emails(db, admin) == ["one@example.com"]


def test_empty_set_sees_nothing(db, orders_by_division):
    admin = make_user(db, "a0@example.com", role=Role.ADMIN)
    assert _visible_owner_emails(db, admin) == []


def test_superadmin_sees_everything(db, orders_by_division):
    root = make_user(db, "root@example.com", role=Role.SUPERADMIN)
    assert len(_visible_owner_emails(db, root)) == 3


def test_both_tokens_see_everything(db, orders_by_division):
    admin = make_user(db, "a2@example.com", role=Role.ADMIN, data_access=["crsd1", "crsd2"])
    assert len(_visible_owner_emails(db, admin)) == 3


def test_list_all_division_narrowing(db, orders_by_division):
    admin = make_user(db, "a2@example.com", role=Role.ADMIN, data_access=["crsd1", "crsd2"])
    rows, total = order_service.list_all(db, principal(admin), division=AccessToken.CRSD2)
    assert total == 1
    assert rows[0].user.email == "two@example.com"
