from .db import db
from .person import Person
from .procedure import Procedure, ProcedureMaterial, Material
from .booking import Booking
from .audit_log import AuditLog
from .session import Session
