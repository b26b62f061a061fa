"""
Tests for the order lifecycle: notes, cancellation, staff views and fulfillment.
"""
import pytest

from conftest import make_user, principal
from models.order import Order, OrderItem, FulfillmentStatus, OrderStatus
from models.payment import PaymentMethod
from models.users import Role
from services import cart as cart_service
from services import orders as order_service
from services import payments as payment_service
from services.checkout import checkout
from services.errors import Forbidden, InvalidState, NotFound


@pytest.fixture
def pending_order(db, customer, restaurant, payment_settings):
    rest, menus = restaurant
    cart_service.add_item(db, customer.id, restaurant_id=rest.id, menu_id=menus[0].id, quantity=2)
    cart_service.add_item(db, customer.id, restaurant_id=rest.id, menu_id=menus[1].id, quantity=1)
    return checkout(db, customer.id)


@pytest.fixture
def paid_order(db, customer, pending_order):
    payment_service.process(db, customer.id, pending_order.id, PaymentMethod.QRIS)
    return order_service.show(db, customer.id, pending_order.id)


class TestUserOperations:

    def test_list_and_show_are_owner_scoped(self, db, customer, pending_order):
        stranger = make_user(db, "eve@example.com")

        assert [o.id for o in order_service.list_for_user(db, customer.id)] == [pending_order.id]
        assert order_service.list_for_user(db, stranger.id) == []
        with pytest.raises(NotFound):
            order_service.show(db, stranger.id, pending_order.id)

    def test_update_notes_while_pending(self, db, customer, pending_order):
        order = order_service.update_notes(db, customer.id, pending_order.id, " tanpa es ")
        assert order.notes == "tanpa es"

    def test_update_item_notes_while_pending(self, db, customer, pending_order):
        item_id = pending_order.items[0].id
        item = order_service.update_item_notes(db, customer.id, pending_order.id, item_id, "bungkus")
        assert item.notes == "bungkus"

    def test_update_item_notes_unknown_item(self, db, customer, pending_order):
        with pytest.raises(NotFound):
            order_service.update_item_notes(db, customer.id, pending_order.id, 999, "x")

    def test_notes_are_frozen_once_paid(self, db, customer, paid_order):
        with pytest.raises(InvalidState):
            order_service.update_notes(db, customer.id, paid_order.id, "late")
        with pytest.raises(InvalidState):
            order_service.update_item_notes(db, customer.id, paid_order.id, paid_order.items[0].id, "late")

    def test_cancel_pending_removes_order_and_items(self, db, customer, pending_order):
        code = pending_order.order_code
        order_id = pending_order.id

        assert order_service.cancel(db, customer.id, order_id) == code
        assert db.query(Order).filter(Order.id == order_id).count() == 0
        assert db.query(OrderItem).filter(OrderItem.order_id == order_id).count() == 0

    def test_cancel_paid_is_invalid(self, db, customer, paid_order):
        with pytest.raises(InvalidState):
            order_service.cancel(db, customer.id, paid_order.id)
        assert db.query(Order).filter(Order.id == paid_order.id).one().status == OrderStatus.PAID.value

    def test_cancel_foreign_order_is_not_found(self, db, pending_order):
        stranger = make_user(db, "eve@example.com")
        with pytest.raises(NotFound):
            order_service.cancel(db, stranger.id, pending_order.id)


class TestStaffOperations:

    def test_customers_cannot_use_staff_views(self, db, customer, pending_order):
        with pytest.raises(Forbidden):
            order_service.list_all(db, principal(customer))

    def test_list_all_filters_and_paginates(self, db, superadmin, customer, pending_order, restaurant):
        rest, menus = restaurant
        cart_service.add_item(db, customer.id, restaurant_id=rest.id, menu_id=menus[0].id, quantity=1)
        second = checkout(db, customer.id)
        payment_service.process(db, customer.id, second.id, PaymentMethod.BANK_TRANSFER)

        rows, total = order_service.list_all(db, principal(superadmin), page=1, per_page=1)
        assert total == 2
        assert len(rows) == 1

        rows, total = order_service.list_all(db, principal(superadmin), status=OrderStatus.PAID)
        assert [o.id for o in rows] == [second.id]

        rows, total = order_service.list_all(db, principal(superadmin), search=pending_order.order_code)
        assert [o.id for o in rows] == [pending_order.id]

        rows, total = order_service.list_all(db, principal(superadmin), search="budi")
        assert total == 2

    def test_show_any_outside_scope_is_not_found(self, db, pending_order):
        admin = make_user(db, "a2@example.com", role=Role.ADMIN, data_access=["crsd2"])
        with pytest.raises(NotFound):
            order_service.show_any(db, principal(admin), pending_order.id)

    def test_show_any_inside_scope(self, db, pending_order):
        admin = make_user(db, "a1@example.com", role=Role.ADMIN, data_access=["crsd1"])
        order = order_service.show_any(db, principal(admin), pending_order.id)
        assert order.user.divisi == "CRSD 1"

    def test_fulfillment_requires_paid_order(self, db, superadmin, pending_order):
        with pytest.raises(InvalidState):
            order_service.update_fulfillment(db, principal(superadmin), pending_order.id, FulfillmentStatus.PROCESSING)

    def test_fulfillment_moves_forward_only(self, db, superadmin, paid_order):
        staff = principal(superadmin)
        order = order_service.update_fulfillment(db, staff, paid_order.id, FulfillmentStatus.PROCESSING)
        assert order.order_status == FulfillmentStatus.PROCESSING.value

        with pytest.raises(InvalidState):
            order_service.update_fulfillment(db, staff, paid_order.id, FulfillmentStatus.WAITING)
        with pytest.raises(InvalidState):
            order_service.update_fulfillment(db, staff, paid_order.id, FulfillmentStatus.PROCESSING)

        order = order_service.update_fulfillment(db, staff, paid_order.id, FulfillmentStatus.COMPLETED)
        assert order.order_status == FulfillmentStatus.COMPLETED.value

    def test_item_check_on_paid_order(self, db, superadmin, paid_order):
        item = order_service.set_item_checked(db, principal(superadmin), paid_order.id, paid_order.items[0].id, True)
        assert item.is_checked is True

    def test_item_check_on_pending_order(self, db, superadmin, pending_order):
        with pytest.raises(InvalidState):
            order_service.set_item_checked(
                db, principal(superadmin), pending_order.id, pending_order.items[0].id, True
            )
