"""Import all models here for Alembic autogenerate."""

from chord.db.base_class import Base
from chord.models import chat, match, provider_token, user  # noqa: F401

__all__ = ["Base"]
