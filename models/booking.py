from datetime import datetime
from models.db import db

STATUSES = ("held", "confirmed", "fulfilled", "cancelled")
PAYMENT_TYPES = ("cash", "card", "deposit")


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    # weak references: the person or procedure may be deleted later
    client_id = db.Column(db.Integer, nullable=False, index=True)
    worker_id = db.Column(db.Integer, nullable=False, index=True)
    procedure_id = db.Column(db.Integer, nullable=False, index=True)

    starts_at = db.Column(db.DateTime, nullable=False, index=True)
    ends_at = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="held")
    # set only while status is cancelled
    previous_status = db.Column(db.String(20), nullable=True)

    payment_type = db.Column(db.String(20), nullable=False)
    final_price = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("ends_at > starts_at", name="ck_booking_window_valid"),
        db.CheckConstraint("status in ('held','confirmed','fulfilled','cancelled')", name="ck_booking_status"),
        db.CheckConstraint("payment_type in ('cash','card','deposit')", name="ck_booking_payment_type"),
        db.Index("ix_bookings_worker_window", "worker_id", "starts_at"),
        db.Index("ix_bookings_client_window", "client_id", "starts_at"),
    )

    @property
    def duration_minutes(self) -> int:
        return int((self.ends_at - self.starts_at).total_seconds() // 60)

    def to_dict(self):
        return {
            "id": self.id,
            "client_id": self.client_id,
            "worker_id": self.worker_id,
            "procedure_id": self.procedure_id,
            "starts_at": self.starts_at.isoformat(),
            "ends_at": self.ends_at.isoformat(),
            "status": self.status,
            "previous_status": self.previous_status,
            "payment_type": self.payment_type,
            "final_price": self.final_price,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
