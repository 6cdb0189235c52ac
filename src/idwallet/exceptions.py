# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""Centralized exception hierarchy for idwallet.

All idwallet exceptions inherit from IdWalletError. Every class carries a
stable ``kind`` string so callers can report the failure category without
matching on class names.
"""

from typing import Optional


class IdWalletError(Exception):
    """Base exception for all idwallet errors."""

    kind = "Error"

    def __init__(self, message: str = "", principal: Optional[str] = None):
        super().__init__(message)
        self.principal = principal


class EnrollmentError(IdWalletError):
    """Errors raised while enrolling a principal with a CA."""

    kind = "EnrollmentError"


class AuthenticationFailedError(EnrollmentError):
    """The CA rejected the principal or its enrollment secret."""

    kind = "AuthenticationFailed"


class TransportError(EnrollmentError):
    """The CA could not be reached (network, TLS, timeout, 5xx)."""

    kind = "TransportError"


class MalformedResponseError(EnrollmentError):
    """The CA answered, but the answer is not a usable identity."""

    kind = "MalformedResponse"


class WalletError(IdWalletError):
    """Errors related to wallet (credential store) operations."""

    kind = "WalletError"


class StoreUnavailableError(WalletError):
    """The wallet medium cannot be read or written."""

    kind = "StoreUnavailable"


class IdentityNotFoundError(WalletError, KeyError):
    """No identity is stored under the requested principal."""

    kind = "NotFound"

    def __str__(self) -> str:
        # KeyError.__str__ would quote the message.
        return Exception.__str__(self)


class ConfigurationError(IdWalletError):
    """Connection profile or wallet configuration is invalid."""

    kind = "ConfigurationError"


class MSPDirectoryError(IdWalletError):
    """An MSP directory does not hold exactly one certificate and key."""

    kind = "MSPDirectoryError"


class InvalidPrincipalError(IdWalletError, ValueError):
    """Principal id cannot be used as a wallet label."""

    kind = "InvalidPrincipal"


__all__ = [
    "IdWalletError",
    "EnrollmentError",
    "AuthenticationFailedError",
    "TransportError",
    "MalformedResponseError",
    "WalletError",
    "StoreUnavailableError",
    "IdentityNotFoundError",
    "ConfigurationError",
    "MSPDirectoryError",
    "InvalidPrincipalError",
]
