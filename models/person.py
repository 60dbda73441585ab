from datetime import datetime
from models.db import db

ROLES = ("client", "worker", "admin")
LOYALTY_TIERS = ("Bronze", "Silver", "Gold", "Worker")


class Person(db.Model):
    """Clients, workers and admins share one table, told apart by ``role``."""

    __tablename__ = "persons"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=True, index=True)
    phone = db.Column(db.String(30), nullable=True)

    # only people who log in have a password
    password_hash = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(20), nullable=False, default="client", index=True)

    visits_count = db.Column(db.Integer, nullable=False, default=0)
    loyalty_tier = db.Column(db.String(20), nullable=True)
    # freezes tier auto-computation
    manual_loyalty_tier = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("role in ('client','worker','admin')", name="ck_person_role"),
        db.CheckConstraint("visits_count >= 0", name="ck_person_visits_non_negative"),
    )

    def summary(self):
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}
