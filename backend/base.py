from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import declarative_base


class DictMixin:
    """
    Mixin providing JSON-ready dictionary serialization for SQLAlchemy models.

    Money columns are rendered as two-decimal strings and timestamps as
    ISO-8601 so route handlers can pass the result straight to jsonify.
    """
    def to_dict(self):
        data = {}
        for c in self.__table__.columns:
            value = getattr(self, c.key)
            if isinstance(value, Decimal):
                value = f"{value:.2f}"
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[c.name] = value
        return data


Base = declarative_base(cls=DictMixin)
