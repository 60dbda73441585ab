# tests/conftest.py
from datetime import datetime
from types import SimpleNamespace

import pytest

from app import create_app
from config import Config
from models import db, Booking, Material, Person, Procedure, ProcedureMaterial
from security.password import hash_password

MONDAY = datetime(2025, 3, 10)

PASSWORD = "correct horse battery staple"


@pytest.fixture(scope="function")
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"
        CSRF_ENABLED = False
        BCRYPT_ROUNDS = 4
        SMTP_HOST = None
        OWNER_EMAIL = None

    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    with app.test_client() as c:
        yield c


def at(hour, minute=0, day=MONDAY):
    return day.replace(hour=hour, minute=minute)


def iso(hour, minute=0, day=MONDAY):
    return at(hour, minute, day).isoformat()


def actor(person):
    return SimpleNamespace(id=person.id, role=person.role)


# —— Factories ——
@pytest.fixture
def make_person(app):
    counter = {"n": 0}

    def _make_person(name=None, role="client", email=None, password=PASSWORD, **fields):
        counter["n"] += 1
        n = counter["n"]
        p = Person(
            name=name or f"{role.title()} {n}",
            email=email or f"{role}{n}@example.com",
            role=role,
            password_hash=hash_password(password) if password else None,
            **fields,
        )
        db.session.add(p)
        db.session.commit()
        return p
    return _make_person


@pytest.fixture
def make_material(app):
    def _make_material(name="Shampoo", unit="ml", stock_on_hand=100):
        m = Material(name=name, unit=unit, stock_on_hand=stock_on_hand)
        db.session.add(m)
        db.session.commit()
        return m
    return _make_material


@pytest.fixture
def make_procedure(app):
    def _make_procedure(name="Haircut", duration_min=60, price=100, bom=()):
        p = Procedure(name=name, duration_min=duration_min, price=price)
        for position, (material_id, qty) in enumerate(bom):
            p.bom.append(ProcedureMaterial(material_id=material_id, qty_per_procedure=qty, position=position))
        db.session.add(p)
        db.session.commit()
        return p
    return _make_procedure


@pytest.fixture
def make_booking(app):
    """Insert a booking row directly, bypassing the scheduler checks."""
    def _make_booking(client, worker, procedure, starts_at, ends_at, status="held",
                      payment_type="cash", final_price=None, previous_status=None):
        b = Booking(
            client_id=client.id,
            worker_id=worker.id,
            procedure_id=procedure.id,
            starts_at=starts_at,
            ends_at=ends_at,
            status=status,
            previous_status=previous_status,
            payment_type=payment_type,
            final_price=procedure.price if final_price is None else final_price,
        )
        db.session.add(b)
        db.session.commit()
        return b
    return _make_booking


@pytest.fixture
def salon(make_person, make_procedure, make_material):
    """One admin, two workers, two clients, a haircut with a two-line BOM."""
    shampoo = make_material("Shampoo", "ml", 100)
    foil = make_material("Foil", "pcs", 10)
    return SimpleNamespace(
        admin=make_person("Ada Admin", role="admin"),
        worker=make_person("Wendy Worker", role="worker"),
        worker2=make_person("Walter Worker", role="worker"),
        client=make_person("Clara Client", role="client"),
        client2=make_person("Carl Client", role="client"),
        haircut=make_procedure("Haircut", 60, 100, bom=[(shampoo.id, 15), (foil.id, 2)]),
        shampoo=shampoo,
        foil=foil,
    )


def login(client, person, password=PASSWORD):
    resp = client.post("/auth/login", json={"email": person.email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp
