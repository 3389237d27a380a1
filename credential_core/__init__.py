"""
Credential Core Library
=======================
Credential and verification subsystem: lookup tokens, field encryption,
password hashing, password-reset OTPs and account flows.
"""

__version__ = "0.1.0"

# Configuration
from credential_core.config import CredentialSettings, HasherConfig, SMTPConfig

# Errors
from credential_core.errors import (
    ErrorKind,
    CredentialError,
    InvalidArgument,
    NotFound,
    AlreadyExists,
    Expired,
    InvalidCredential,
    DecryptionError,
    ConfigurationError,
    StoreUnavailable,
    DeliveryError,
    RetryExhausted,
)

# Primitives
from credential_core.lookup import LookupTokenizer
from credential_core.cipher import FieldCipher
from credential_core.password import SecretHasher, hash_password, verify_password

# OTP
from credential_core.otp import OTPConfig, OTPManager, OTPSweeper, OtpOutcome, ResetTicket

# Identity
from credential_core.identity import IdentityResolver

# Store
from credential_core.store import (
    CredentialStore,
    InMemoryCredentialStore,
    SQLCredentialStore,
    Database,
)

# Mail
from credential_core.mailer import Mailer, SMTPMailer

# Flows
from credential_core.service import AccountService, SessionPrincipal, UserProfile

# Logging
from credential_core.logging_setup import setup_logging

__all__ = [
    # Configuration
    "CredentialSettings",
    "HasherConfig",
    "SMTPConfig",
    # Errors
    "ErrorKind",
    "CredentialError",
    "InvalidArgument",
    "NotFound",
    "AlreadyExists",
    "Expired",
    "InvalidCredential",
    "DecryptionError",
    "ConfigurationError",
    "StoreUnavailable",
    "DeliveryError",
    "RetryExhausted",
    # Primitives
    "LookupTokenizer",
    "FieldCipher",
    "SecretHasher",
    "hash_password",
    "verify_password",
    # OTP
    "OTPConfig",
    "OTPManager",
    "OTPSweeper",
    "OtpOutcome",
    "ResetTicket",
    # Identity
    "IdentityResolver",
    # Store
    "CredentialStore",
    "InMemoryCredentialStore",
    "SQLCredentialStore",
    "Database",
    # Mail
    "Mailer",
    "SMTPMailer",
    # Flows
    "AccountService",
    "SessionPrincipal",
    "UserProfile",
    # Logging
    "setup_logging",
]
