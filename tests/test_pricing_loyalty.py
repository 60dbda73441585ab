import threading

import pytest

from conftest import actor, at
from models import db, AuditLog, Person
from services.bookings import transition_status
from services.loyalty import reconcile_tier, record_visit, revoke_visit, tier_for_visits
from services.pricing import discount_for_tier, final_price


@pytest.mark.parametrize("tier,discount", [
    ("Gold", 0.2),
    ("Silver", 0.1),
    ("Bronze", 0.05),
    ("Worker", 0.5),
    (None, 0),
    ("Platinum", 0),
])
def test_discount_table(app, tier, discount):
    assert discount_for_tier(tier) == discount


def test_final_price_applies_discount(app):
    assert final_price(100, "Gold") == 80
    assert final_price(100, "Bronze") == 95
    assert final_price(59.99, None) == 59.99


def test_discount_table_is_configurable(app):
    app.config["LOYALTY_DISCOUNTS"] = {"Gold": 0.5}
    assert final_price(100, "Gold") == 50
    assert final_price(100, "Silver") == 100


@pytest.mark.parametrize("visits,tier", [
    (0, None), (9, None), (10, "Bronze"), (24, "Bronze"),
    (25, "Silver"), (49, "Silver"), (50, "Gold"), (500, "Gold"),
])
def test_tier_for_visits(app, visits, tier):
    assert tier_for_visits(visits) == tier


def test_visit_ten_promotes_to_bronze(app, make_person):
    client = make_person(visits_count=9)
    record_visit(client.id)
    db.session.refresh(client)
    assert client.visits_count == 10
    assert client.loyalty_tier == "Bronze"
    assert AuditLog.query.filter_by(action="LOYALTY_TIER_CHANGED", entity_id=str(client.id)).count() == 1


def test_revoked_visit_drops_back_below_bronze(app, make_person):
    client = make_person(visits_count=10, loyalty_tier="Bronze")
    revoke_visit(client.id)
    db.session.refresh(client)
    assert client.visits_count == 9
    assert client.loyalty_tier is None


def test_visits_never_go_negative(app, make_person):
    client = make_person(visits_count=0)
    revoke_visit(client.id)
    revoke_visit(client.id)
    db.session.refresh(client)
    assert client.visits_count == 0


def test_reconcile_is_idempotent(app, make_person):
    client = make_person(visits_count=30)
    assert reconcile_tier(client.id) == "Silver"
    assert reconcile_tier(client.id) == "Silver"
    db.session.refresh(client)
    assert client.loyalty_tier == "Silver"
    assert AuditLog.query.filter_by(action="LOYALTY_TIER_CHANGED").count() == 1


def test_worker_tier_is_frozen(app, make_person):
    staff = make_person(role="worker", visits_count=60, loyalty_tier="Worker")
    assert reconcile_tier(staff.id) == "Worker"
    db.session.refresh(staff)
    assert staff.loyalty_tier == "Worker"


def test_manual_tier_is_frozen(app, make_person):
    vip = make_person(visits_count=0, loyalty_tier="Gold", manual_loyalty_tier=True)
    record_visit(vip.id)
    db.session.refresh(vip)
    assert vip.visits_count == 1
    assert vip.loyalty_tier == "Gold"


def test_missing_client_is_ignored(app):
    assert reconcile_tier(999) is None
    record_visit(999)


def _in_threads(app, count, fn):
    barrier = threading.Barrier(count)
    errors = []

    def run():
        with app.app_context():
            barrier.wait()
            try:
                fn()
            except Exception as exc:
                errors.append(exc)

    threads = [threading.Thread(target=run) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


def test_concurrent_visits_are_all_counted(app, make_person):
    client = make_person(visits_count=8)
    client_id = client.id

    def visit_three_times():
        for _ in range(3):
            record_visit(client_id)

    assert _in_threads(app, 2, visit_three_times) == []

    db.session.expire_all()
    client = db.session.get(Person, client_id)
    assert client.visits_count == 14
    assert client.loyalty_tier == "Bronze"


def test_concurrent_fulfilments_of_one_client(app, salon, make_booking):
    first = make_booking(salon.client, salon.worker, salon.haircut, at(10), at(11), status="confirmed")
    second = make_booking(salon.client, salon.worker2, salon.haircut, at(12), at(13), status="confirmed")
    admin = actor(salon.admin)
    pending = [first.id, second.id]

    def fulfil():
        transition_status(admin, pending.pop(), "fulfilled")

    assert _in_threads(app, 2, fulfil) == []

    db.session.expire_all()
    assert db.session.get(Person, salon.client.id).visits_count == 2


def test_revoke_floors_at_zero_in_sql(app, make_person):
    client = make_person(visits_count=1)
    client_id = client.id

    assert _in_threads(app, 3, lambda: revoke_visit(client_id)) == []

    db.session.expire_all()
    assert db.session.get(Person, client_id).visits_count == 0
