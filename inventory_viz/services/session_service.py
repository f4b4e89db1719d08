from __future__ import annotations

import logging
import secrets
import string
from typing import TYPE_CHECKING, Optional

from inventory_viz.services.storage import StorageBackend

if TYPE_CHECKING:
    from inventory_viz.services.api_client import InventoryApiClient

logger = logging.getLogger(__name__)

USERNAME_ALPHABET = string.ascii_uppercase + string.digits + string.ascii_lowercase
USERNAME_LENGTH = 15


def generate_username(length: int = USERNAME_LENGTH) -> str:
    return "".join(secrets.choice(USERNAME_ALPHABET) for _ in range(length))


class TokenStore:
    """
    Auth token of one browser session, backed by a StorageBackend.
    """

    def __init__(self, storage: StorageBackend, session_id: str = "default"):
        self.storage = storage
        self.path = f"{session_id}/token"

    def get(self) -> Optional[str]:
        if not self.storage.exists(self.path):
            return None
        token = self.storage.read_bytes(self.path).decode("utf-8").strip()
        return token or None

    def set(self, token: str) -> None:
        try:
            self.storage.write_bytes(self.path, token.encode("utf-8"))
        except Exception:
            logger.exception("Failed to persist token", extra={"path": self.path})

    def clear(self) -> None:
        self.storage.delete(self.path)


class SessionService:
    """
    Registers an anonymous user with the backend and keeps the returned token.
    """

    def __init__(self, client: InventoryApiClient, token_store: TokenStore):
        self.client = client
        self.token_store = token_store

    def register(self, username: Optional[str] = None) -> str:
        username = username or generate_username()
        token = self.client.register_user(username)
        self.token_store.set(token)
        logger.info("Session registered", extra={"username": username})
        return token

    def ensure_registered(self) -> str:
        """Reuse a stored token when there is one, otherwise register."""
        token = self.token_store.get()
        if token:
            return token
        return self.register()
