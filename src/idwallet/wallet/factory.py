# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""Build a wallet backend from a WalletConfig."""

from ..exceptions import ConfigurationError
from .filesystem_provider import FileSystemWallet
from .memory_provider import InMemoryWallet
from .provider import Wallet, WalletConfig


def create_wallet(config: WalletConfig) -> Wallet:
    """Return the wallet backend described by ``config``.

    Raises:
        ConfigurationError: If a filesystem wallet has no path.
    """
    if config.backend == "memory":
        return InMemoryWallet()
    if not config.path:
        raise ConfigurationError("A filesystem wallet requires a path")
    return FileSystemWallet(config.path)
