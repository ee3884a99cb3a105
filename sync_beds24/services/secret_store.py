"""
Secret store for Beds24 refresh tokens.

Secrets are Fernet-encrypted and stored in connection_secrets under an opaque
reference. Everything else in the system (connections rows, logs, audit
entries) only ever sees the reference.
"""

from __future__ import annotations

import secrets

import structlog
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import insert, select
from sqlalchemy.engine import Connection

from sync_beds24.config import SECRET_ENCRYPTION_KEY
from sync_beds24.errors import SecretNotFound
from sync_beds24.models.secrets import ConnectionSecret
from sync_beds24.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


class SecretStore:
    """
    Encrypting accessor for long-lived credentials.

    Example:
        >>> store = SecretStore(Fernet.generate_key().decode())
        >>> with engine.begin() as conn:
        ...     ref = store.put_secret(conn, "refresh-token")
        ...     store.get_secret(conn, ref)
        'refresh-token'
    """

    def __init__(self, key: str | bytes | None = None):
        key = key or SECRET_ENCRYPTION_KEY
        if not key:
            raise ValueError("SECRET_ENCRYPTION_KEY must be set to store connection secrets")
        self._fernet = Fernet(key)

    def put_secret(self, conn: Connection, value: str) -> str:
        """
        Encrypt and store value.

        Args:
            conn: Active connection; the row commits with the caller's transaction
            value: Raw secret

        Returns:
            Opaque reference for later get_secret() calls
        """
        reference = f"secret_{secrets.token_hex(16)}"
        conn.execute(
            insert(ConnectionSecret).values(
                reference=reference,
                ciphertext=self._fernet.encrypt(value.encode("utf-8")),
                created_at=utc_now(),
            )
        )
        logger.debug("secret_stored", reference=reference)
        return reference

    def get_secret(self, conn: Connection, reference: str) -> str:
        """
        Return the decrypted secret for reference.

        Raises:
            SecretNotFound: Unknown reference, or ciphertext not readable with the
                configured key
        """
        ciphertext = conn.execute(
            select(ConnectionSecret.ciphertext).where(ConnectionSecret.reference == reference)
        ).scalar_one_or_none()
        if ciphertext is None:
            raise SecretNotFound("Secret not found", {"reference": reference})

        try:
            return self._fernet.decrypt(bytes(ciphertext)).decode("utf-8")
        except InvalidToken as e:
            raise SecretNotFound("Secret cannot be decrypted", {"reference": reference}) from e
