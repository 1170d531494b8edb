from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase

from ..db.metadata import metadata_obj


class Base(DeclarativeBase):
    """Declarative base for giveaway tables; every timestamp column is tz-aware."""

    metadata = metadata_obj
    type_annotation_map = {datetime: DateTime(timezone=True)}
