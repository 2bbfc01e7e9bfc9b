"""
Identity Models
===============
The account record an OTP is issued against, and its attribute store.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional


class Identity(ABC):
    """
    Abstract identity record.

    Implementations wrap whatever user directory the embedding service uses.
    Attribute operations are synchronous, like the directory models they wrap.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        ...

    @property
    @abstractmethod
    def email(self) -> Optional[str]:
        ...

    @property
    def username(self) -> Optional[str]:
        return None

    @property
    def first_name(self) -> Optional[str]:
        return None

    @property
    @abstractmethod
    def email_verified(self) -> bool:
        ...

    @abstractmethod
    def get_attribute(self, key: str) -> Optional[str]:
        """Return the attribute value, or None if absent."""

    @abstractmethod
    def set_attribute(self, key: str, value: str) -> None:
        """Set a single-valued attribute, replacing any previous value."""

    @abstractmethod
    def remove_attribute(self, key: str) -> None:
        """Remove an attribute; a missing key is not an error."""

    @abstractmethod
    def set_email_verified(self, verified: bool) -> None:
        ...


class InMemoryIdentity(Identity):
    """
    Simple in-memory identity.

    For development and testing only.
    """

    def __init__(
        self,
        user_id: str,
        email: Optional[str],
        username: Optional[str] = None,
        first_name: Optional[str] = None,
        email_verified: bool = False,
        attributes: Optional[Dict[str, str]] = None,
    ):
        self._id = user_id
        self._email = email
        self._username = username
        self._first_name = first_name
        self._email_verified = email_verified
        self.attributes: Dict[str, str] = dict(attributes or {})

    @property
    def id(self) -> str:
        return self._id

    @property
    def email(self) -> Optional[str]:
        return self._email

    @property
    def username(self) -> Optional[str]:
        return self._username

    @property
    def first_name(self) -> Optional[str]:
        return self._first_name

    @property
    def email_verified(self) -> bool:
        return self._email_verified

    def get_attribute(self, key: str) -> Optional[str]:
        return self.attributes.get(key)

    def set_attribute(self, key: str, value: str) -> None:
        self.attributes[key] = value

    def remove_attribute(self, key: str) -> None:
        self.attributes.pop(key, None)

    def set_email_verified(self, verified: bool) -> None:
        self._email_verified = verified

    def __repr__(self) -> str:
        return f"InMemoryIdentity(id={self._id!r})"
