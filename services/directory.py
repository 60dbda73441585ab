"""
Read-only lookups of people and procedures used by the scheduler.
"""
from models import db
from models.person import Person
from models.procedure import Procedure
from services.errors import NotFoundError


def find_person(person_id):
    if person_id is None:
        return None
    return db.session.get(Person, person_id)


def get_person(person_id, label: str = "Person") -> Person:
    person = find_person(person_id)
    if person is None:
        raise NotFoundError(f"{label} not found")
    return person


def people_by_role(role: str):
    return Person.query.filter_by(role=role).order_by(Person.id.asc()).all()


def person_ids_by_name(name: str, role: str = None):
    q = Person.query.filter(Person.name.ilike(f"%{name}%"))
    if role:
        q = q.filter(Person.role == role)
    return [p.id for p in q.with_entities(Person.id).all()]


def people_by_ids(ids):
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    return {p.id: p for p in Person.query.filter(Person.id.in_(ids)).all()}


def find_procedure(procedure_id):
    if procedure_id is None:
        return None
    return db.session.get(Procedure, procedure_id)


def get_procedure(procedure_id) -> Procedure:
    procedure = find_procedure(procedure_id)
    if procedure is None:
        raise NotFoundError("Procedure not found")
    return procedure


def procedures_by_ids(ids):
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    return {p.id: p for p in Procedure.query.filter(Procedure.id.in_(ids)).all()}
