"""SQLAlchemy model backing the secret store."""

from sqlalchemy import Column, DateTime, LargeBinary, String
from sqlalchemy.sql import func

from sync_beds24.config import SCHEMA
from sync_beds24.models.base import Base


class ConnectionSecret(Base):
    """Fernet-encrypted secret addressed by an opaque reference."""

    __tablename__ = "connection_secrets"
    __table_args__ = {"schema": SCHEMA}

    reference = Column(String(64), primary_key=True)
    ciphertext = Column(LargeBinary, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
