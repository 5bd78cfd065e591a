"""Database base class and model imports."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models here for Alembic to detect them
from gatepass.db.models.event import Event  # noqa: F401, E402
from gatepass.db.models.attendee import Attendee  # noqa: F401, E402
from gatepass.db.models.credential import Credential  # noqa: F401, E402
