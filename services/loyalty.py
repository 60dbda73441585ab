"""
Loyalty tier evaluation.

The tier of a client is derived from ``visits_count`` alone, so re-running
``reconcile_tier`` with an unchanged count never moves the tier. Workers
(tier ``Worker``) and clients whose tier was set by hand are left alone.

Visit counts change with a single SQL ``UPDATE`` so concurrent fulfilments
of the same client never lose an increment, and a tier is only written if
the count it was derived from is still the stored one.
"""
from flask import current_app
from sqlalchemy import case

from models import db
from models.person import Person
from services.directory import find_person
from utils.audit import log_event

FROZEN_TIERS = {"Worker"}


def tier_for_visits(visits_count: int, thresholds=None):
    if thresholds is None:
        thresholds = current_app.config.get("LOYALTY_THRESHOLDS", [])
    for min_visits, tier in sorted(thresholds, key=lambda t: t[0], reverse=True):
        if visits_count >= min_visits:
            return tier
    return None


def reconcile_tier(client_id):
    while True:
        client = find_person(client_id)
        if client is None:
            current_app.logger.warning("loyalty: client %s not found, tier not reconciled", client_id)
            return None
        if client.loyalty_tier in FROZEN_TIERS or client.manual_loyalty_tier:
            return client.loyalty_tier

        visits = client.visits_count or 0
        old_tier = client.loyalty_tier
        new_tier = tier_for_visits(visits)
        if new_tier == old_tier:
            return new_tier

        updated = (
            Person.query
            .filter(Person.id == client.id, Person.visits_count == visits)
            .update({Person.loyalty_tier: new_tier}, synchronize_session=False)
        )
        db.session.commit()
        if updated:
            log_event(
                "LOYALTY_TIER_CHANGED",
                entity="person",
                entity_id=client_id,
                metadata={"from": old_tier, "to": new_tier, "visits_count": visits},
            )
            return new_tier
        # the count moved since it was read, derive the tier again


def _bump_visits(client_id, new_value, verb):
    updated = (
        Person.query
        .filter(Person.id == client_id)
        .update({Person.visits_count: new_value}, synchronize_session=False)
    )
    if not updated:
        db.session.rollback()
        current_app.logger.warning("loyalty: client %s not found, visit not %s", client_id, verb)
        return False
    db.session.commit()
    return True


def record_visit(client_id):
    if _bump_visits(client_id, Person.visits_count + 1, "recorded"):
        reconcile_tier(client_id)


def revoke_visit(client_id):
    never_negative = case((Person.visits_count > 0, Person.visits_count - 1), else_=0)
    if _bump_visits(client_id, never_negative, "revoked"):
        reconcile_tier(client_id)
