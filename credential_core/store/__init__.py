"""
Credential Store
================
Persistence contract plus in-memory and SQLAlchemy implementations.
"""

from .models import NewUser, UserRecord, TokenRecord, OtpRecord
from .base import CredentialStore
from .memory import InMemoryCredentialStore
from .database import Database
from .sql import SQLCredentialStore

__all__ = [
    # Records
    "NewUser",
    "UserRecord",
    "TokenRecord",
    "OtpRecord",
    # Contract
    "CredentialStore",
    # Implementations
    "InMemoryCredentialStore",
    "Database",
    "SQLCredentialStore",
]
