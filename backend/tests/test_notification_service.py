from datetime import date, timedelta

import pytest

from retailpos.models import Notification
from retailpos.references import ProductRef
from retailpos.services import notification_service


TODAY = date(2025, 8, 20)


@pytest.fixture
def staff(make_user):
    return {
        "admin": make_user("admin", role="admin"),
        "manager": make_user("manager", role="manager"),
        "cashier": make_user("cashier", role="cashier"),
        "retired": make_user("retired", role="manager", is_active=False),
    }


def test_low_stock_goes_to_active_admins_and_managers(db_session, staff, make_product, make_inventory):
    inventory = make_inventory(make_product("Milk"), quantity=1, min_stock_level=8)

    created = notification_service.notify_low_stock(inventory)
    db_session.commit()

    recipients = {n.user_id for n in created}
    assert recipients == {staff["admin"].id, staff["manager"].id}
    assert created[0].related == ProductRef(inventory.product_id)
    assert created[0].message == "Product Milk is running low on stock. Current quantity: 1, Minimum required: 8"


def test_unread_duplicates_are_skipped(db_session, staff, make_product, make_inventory):
    inventory = make_inventory(make_product("Milk"), quantity=1, min_stock_level=8)

    notification_service.notify_low_stock(inventory)
    db_session.commit()
    assert notification_service.notify_low_stock(inventory) == []

    notification_service.mark_all_read(staff["admin"].id)
    again = notification_service.notify_low_stock(inventory)
    assert [n.user_id for n in again] == [staff["admin"].id]


def test_no_recipients(db_session, make_product, make_inventory):
    inventory = make_inventory(make_product("Milk"), quantity=0, min_stock_level=1)
    assert notification_service.notify_low_stock(inventory) == []


def test_notify_expiry_kinds(db_session, staff, make_product, make_inventory):
    inventory = make_inventory(make_product("Yogurt"), quantity=20, expiry_date=date(2025, 8, 19))

    expired = notification_service.notify_expiry(inventory, "expired")
    near = notification_service.notify_expiry(inventory, "near")
    db_session.commit()

    assert {n.type for n in expired} == {"expiry_alert"}
    assert expired[0].message == "Product Yogurt has expired on 2025-08-19."
    assert {n.type for n in near} == {"near_expiry"}
    assert near[0].title == "Near Expiry Alert"

    with pytest.raises(ValueError):
        notification_service.notify_expiry(inventory, "soon")


def test_scan_expiring(db_session, staff, make_product, make_inventory):
    make_inventory(make_product("Yogurt"), quantity=20, expiry_date=TODAY - timedelta(days=1))
    make_inventory(make_product("Cheese"), quantity=20, expiry_date=TODAY + timedelta(days=3))
    make_inventory(make_product("Honey"), quantity=20, expiry_date=TODAY + timedelta(days=300))
    make_inventory(make_product("Salt"), quantity=20)

    created = notification_service.scan_expiring(today=TODAY)

    # two recipients per alerting product
    assert sorted(n.type for n in created) == ["expiry_alert", "expiry_alert", "near_expiry", "near_expiry"]
    assert notification_service.scan_expiring(today=TODAY) == []


def test_read_state(db_session, staff, make_product, make_inventory):
    inventory = make_inventory(make_product("Milk"), quantity=1, min_stock_level=8)
    notification_service.notify_low_stock(inventory)
    notification_service.notify_expiry(
        make_inventory(make_product("Yogurt"), quantity=20, expiry_date=TODAY), "expired"
    )
    db_session.commit()

    admin_id = staff["admin"].id
    assert notification_service.unread_count(admin_id) == 2

    first = notification_service.list_for_user(admin_id)[0]
    notification_service.mark_read(first.id, admin_id)
    assert notification_service.unread_count(admin_id) == 1
    assert len(notification_service.list_for_user(admin_id, unread_only=True)) == 1

    assert notification_service.mark_all_read(admin_id) == 1
    assert notification_service.unread_count(admin_id) == 0


def test_mark_read_is_scoped_to_owner(db_session, staff, make_product, make_inventory):
    inventory = make_inventory(make_product("Milk"), quantity=1, min_stock_level=8)
    created = notification_service.notify_low_stock(inventory)
    db_session.commit()
    admin_note = next(n for n in created if n.user_id == staff["admin"].id)

    with pytest.raises(LookupError):
        notification_service.mark_read(admin_note.id, staff["manager"].id)


def test_delete_notification(db_session, staff, make_product, make_inventory):
    inventory = make_inventory(make_product("Milk"), quantity=1, min_stock_level=8)
    created = notification_service.notify_low_stock(inventory)
    db_session.commit()
    note = next(n for n in created if n.user_id == staff["admin"].id)

    notification_service.delete_notification(note.id, staff["admin"].id)
    assert db_session.get(Notification, note.id) is None

    with pytest.raises(LookupError):
        notification_service.delete_notification(note.id, staff["admin"].id)
