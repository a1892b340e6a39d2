# backend/sardb/__init__.py
"""
Import ORM models from each app so that Alembic and
Base.metadata.create_all() see every table.

The model classes live in sardb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models          # roles / permission keys
from .apps.members import models as members_models            # roster
from .apps.training import models as training_models          # courses + certifications
from .apps.activity import models as activity_models          # training sessions, calls, meetings, events
from .apps.positions import models as positions_models        # positions, requirements, tasks, signoffs
from .apps.audit import models as audit_models                # audit trail

__all__ = [
    "accounts_models",
    "members_models",
    "training_models",
    "activity_models",
    "positions_models",
    "audit_models",
]
