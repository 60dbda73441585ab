from datetime import datetime
from models.db import db


class Material(db.Model):
    __tablename__ = "materials"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    unit = db.Column(db.String(10), nullable=False, default="pcs")  # ml, g, pcs

    # no floor: depletion may drive this negative
    stock_on_hand = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("unit in ('ml','g','pcs')", name="ck_material_unit"),
    )


class ProcedureMaterial(db.Model):
    """One bill-of-materials line of a procedure."""

    __tablename__ = "procedure_materials"

    id = db.Column(db.Integer, primary_key=True)
    procedure_id = db.Column(db.Integer, db.ForeignKey("procedures.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id = db.Column(db.Integer, nullable=False, index=True)
    qty_per_procedure = db.Column(db.Float, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)


class Procedure(db.Model):
    __tablename__ = "procedures"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    duration_min = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    bom = db.relationship(
        "ProcedureMaterial",
        order_by="ProcedureMaterial.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        db.CheckConstraint("duration_min > 0", name="ck_procedure_duration_positive"),
    )

    def summary(self):
        return {
            "id": self.id,
            "name": self.name,
            "duration_min": self.duration_min,
            "price": self.price,
        }
