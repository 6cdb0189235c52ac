# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Abstract Wallet Interface.

Defines the contract that all credential store backends must implement.
"""

from abc import ABC, abstractmethod
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..identity.record import IdentityRecord


class WalletConfig(BaseModel):
    """Configuration for a wallet backend."""

    backend: Literal["filesystem", "memory"] = Field(
        default="filesystem", description="Wallet backend type"
    )
    path: Optional[str] = Field(default=None, description="Wallet directory (filesystem)")


class Wallet(ABC):
    """
    Abstract credential store.

    Maps a principal id (the wallet label) to at most one IdentityRecord.
    Implementations must make ``put`` atomic per principal: a reader never
    observes a half-written record. ``put`` replaces an existing record
    (last writer wins).
    """

    @abstractmethod
    def exists(self, principal: str) -> bool:
        """Return True if an identity is stored for ``principal``.

        Absence is a normal result, never an error.

        Raises:
            StoreUnavailableError: If the medium cannot be read.
        """

    @abstractmethod
    def get(self, principal: str) -> IdentityRecord:
        """Return the identity stored for ``principal``.

        Raises:
            IdentityNotFoundError: If no identity is stored.
            StoreUnavailableError: If the medium cannot be read.
        """

    @abstractmethod
    def put(self, principal: str, record: IdentityRecord) -> None:
        """Store ``record`` under ``principal`` atomically.

        Raises:
            StoreUnavailableError: If the medium cannot be written.
        """

    @abstractmethod
    def list(self) -> list[str]:
        """Return the sorted labels of all stored identities."""
