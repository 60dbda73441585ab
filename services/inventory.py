from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.procedure import Material
from services.directory import find_procedure


def deplete(procedure_id) -> int:
    """Take one procedure's bill of materials out of stock.

    Best effort: every line is decremented in its own savepoint, a failing
    line is logged and skipped. Stock is allowed to go negative. Returns the
    number of materials decremented.
    """
    procedure = find_procedure(procedure_id)
    if procedure is None:
        current_app.logger.warning("inventory: procedure %s not found, nothing depleted", procedure_id)
        return 0

    depleted = 0
    for item in list(procedure.bom):
        try:
            with db.session.begin_nested():
                updated = (
                    Material.query
                    .filter(Material.id == item.material_id)
                    .update(
                        {Material.stock_on_hand: Material.stock_on_hand - float(item.qty_per_procedure)},
                        synchronize_session=False,
                    )
                )
            if not updated:
                current_app.logger.warning(
                    "inventory: material %s of procedure %s not found", item.material_id, procedure.id
                )
                continue
            depleted += 1
        except SQLAlchemyError:
            current_app.logger.exception(
                "inventory: failed to deplete material %s for procedure %s", item.material_id, procedure.id
            )
    db.session.commit()
    return depleted
