"""
Per-person booking lock.

A booking write is only safe if nobody else books the same person between the
conflict check and the commit. ``lock_people`` serialises those sections: an
in-process mutex per person id, plus ``SELECT ... FOR UPDATE`` on the person
rows so separate processes sharing a PostgreSQL database queue up as well
(SQLite does not support row locks and only gets the in-process mutex).

Mutexes are reference counted and dropped once no caller holds or waits on
them, so the registry only ever contains people being booked right now.
"""
import threading
from contextlib import contextmanager

from models import db
from models.person import Person

_registry_guard = threading.Lock()
# person id -> [lock, number of callers holding or waiting on it]
_person_locks = {}


def _check_out(person_id) -> threading.Lock:
    with _registry_guard:
        entry = _person_locks.get(person_id)
        if entry is None:
            entry = _person_locks[person_id] = [threading.Lock(), 0]
        entry[1] += 1
        return entry[0]


def _check_in(person_id) -> None:
    with _registry_guard:
        entry = _person_locks[person_id]
        entry[1] -= 1
        if entry[1] == 0:
            del _person_locks[person_id]


@contextmanager
def lock_people(*person_ids):
    # sorted acquisition order keeps two bookings for the same pair deadlock free
    ids = sorted({pid for pid in person_ids if pid is not None})
    locks = [_check_out(pid) for pid in ids]
    acquired = []
    try:
        for lock in locks:
            lock.acquire()
            acquired.append(lock)
        if ids:
            Person.query.filter(Person.id.in_(ids)).order_by(Person.id).with_for_update().all()
        yield
    except Exception:
        db.session.rollback()
        raise
    finally:
        for lock in reversed(acquired):
            lock.release()
        for pid in ids:
            _check_in(pid)
