"""
Wallets (credential stores) for idwallet.

Provides the abstract Wallet contract and its in-memory and file system
implementations.
"""

from .provider import Wallet, WalletConfig
from .memory_provider import InMemoryWallet
from .filesystem_provider import FileSystemWallet
from .factory import create_wallet

__all__ = [
    "Wallet",
    "WalletConfig",
    "InMemoryWallet",
    "FileSystemWallet",
    "create_wallet",
]
