"""
User Credential Module
======================
Encrypted, per-Discord-user storage of UEX API credentials.
"""

from .crypto import CredentialCipher
from .store import UserStore
from .validator import CredentialValidator, ValidationResult, MIN_CREDENTIAL_LENGTH
from .manager import (
    UserManager,
    UEXCredentials,
    OperationResult,
    CredentialLookup,
    ExternalUserMatch,
    UserStats,
    get_user_manager,
    reset_user_manager,
)

__all__ = [
    'CredentialCipher',
    'UserStore',
    'CredentialValidator',
    'ValidationResult',
    'MIN_CREDENTIAL_LENGTH',
    'UserManager',
    'UEXCredentials',
    'OperationResult',
    'CredentialLookup',
    'ExternalUserMatch',
    'UserStats',
    'get_user_manager',
    'reset_user_manager',
]
