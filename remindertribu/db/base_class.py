from typing import Any

from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    """Declarative base; table name defaults to the lowercased class name."""

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore
        return cls.__name__.lower()

    def as_row(self) -> dict[str, Any]:
        """Column values keyed by column name, for logging and fixtures."""
        return {c.key: getattr(self, c.key) for c in self.__table__.columns}
