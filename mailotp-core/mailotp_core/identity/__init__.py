"""
Identity Collaborators
======================
Abstract identity records and directory lookup.
"""

from .models import Identity, InMemoryIdentity
from .directory import IdentityDirectory, InMemoryIdentityDirectory

__all__ = [
    "Identity",
    "InMemoryIdentity",
    "IdentityDirectory",
    "InMemoryIdentityDirectory",
]
