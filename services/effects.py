from dataclasses import dataclass, field
from typing import Any, Callable, Tuple

from flask import current_app

from models import db


@dataclass
class Effect:
    """A side effect to attempt after the booking write has committed."""

    name: str
    fn: Callable[..., Any]
    args: Tuple[Any, ...] = field(default_factory=tuple)


def run_effects(effects):
    """Run each effect on its own. A failure is rolled back and logged and
    does not stop the effects after it. Returns the names that failed."""
    failed = []
    for effect in effects:
        try:
            effect.fn(*effect.args)
        except Exception:
            db.session.rollback()
            failed.append(effect.name)
            current_app.logger.exception("effects: %s failed", effect.name)
    return failed
