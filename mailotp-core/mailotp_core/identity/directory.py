"""
Identity Directory
==================
Identity resolution by user id or email address.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set

from .models import Identity


class IdentityDirectory(ABC):
    """Abstract identity lookup, scoped by realm."""

    @abstractmethod
    async def find_identity(
        self,
        realm: str,
        email: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Optional[Identity]:
        """
        Find an identity.

        A non-empty ``user_id`` takes precedence over ``email``.

        Returns:
            The identity, or None if nothing matches
        """

    async def is_client_enabled(self, realm: str, client_id: str) -> bool:
        """Whether ``client_id`` names an enabled client in ``realm``."""
        return True


class InMemoryIdentityDirectory(IdentityDirectory):
    """
    In-memory identity directory.

    For development and testing only.
    """

    def __init__(
        self,
        identities: Optional[Iterable[Identity]] = None,
        enabled_clients: Optional[Iterable[str]] = None,
    ):
        self._by_id: Dict[str, Identity] = {}
        self._enabled_clients: Optional[Set[str]] = (
            set(enabled_clients) if enabled_clients is not None else None
        )
        for identity in identities or ():
            self.add(identity)

    def add(self, identity: Identity) -> Identity:
        self._by_id[identity.id] = identity
        return identity

    async def find_identity(
        self,
        realm: str,
        email: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Optional[Identity]:
        if user_id:
            return self._by_id.get(user_id)
        if email:
            wanted = email.strip().lower()
            for identity in self._by_id.values():
                if identity.email and identity.email.lower() == wanted:
                    return identity
        return None

    async def is_client_enabled(self, realm: str, client_id: str) -> bool:
        if self._enabled_clients is None:
            return True
        return client_id in self._enabled_clients
