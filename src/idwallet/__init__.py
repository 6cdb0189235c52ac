"""
idwallet - Enroll identities with a Certificate Authority and keep them in a wallet

A principal is enrolled once: the wallet is checked, the CA is asked for a
certificate only when the principal is missing, and the issued X.509
identity is stored durably.

Version: 0.3.0
"""

__version__ = "0.3.0"

from .exceptions import (
    IdWalletError,
    EnrollmentError,
    AuthenticationFailedError,
    TransportError,
    MalformedResponseError,
    WalletError,
    StoreUnavailableError,
    IdentityNotFoundError,
    ConfigurationError,
    MSPDirectoryError,
    InvalidPrincipalError,
)

from .identity import IdentityRecord, load_msp_identity, import_msp_identity

from .wallet import (
    Wallet,
    WalletConfig,
    InMemoryWallet,
    FileSystemWallet,
    create_wallet,
)

from .ca import (
    CAEndpoint,
    ConnectionProfile,
    load_connection_profile,
    EnrollmentClient,
)

from .observability import EnrollmentMetrics

from .workflow import EnrollmentState, EnrollmentOutcome, EnrollmentWorkflow

__all__ = [
    # Version
    "__version__",
    # Exceptions
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
    # Identity
    "IdentityRecord",
    "load_msp_identity",
    "import_msp_identity",
    # Wallets
    "Wallet",
    "WalletConfig",
    "InMemoryWallet",
    "FileSystemWallet",
    "create_wallet",
    # Certificate authority
    "CAEndpoint",
    "ConnectionProfile",
    "load_connection_profile",
    "EnrollmentClient",
    # Observability
    "EnrollmentMetrics",
    # Workflow
    "EnrollmentState",
    "EnrollmentOutcome",
    "EnrollmentWorkflow",
]
