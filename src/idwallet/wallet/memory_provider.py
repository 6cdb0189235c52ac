# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
In-Memory Wallet.

Simple in-memory implementation for development and testing.
"""

import threading

from ..exceptions import IdentityNotFoundError
from ..identity.record import IdentityRecord, validate_principal
from .provider import Wallet


class InMemoryWallet(Wallet):
    """
    In-memory wallet.

    Uses a Python dictionary for storage. Data is lost on restart.
    Suitable for development and testing only.
    """

    def __init__(self) -> None:
        self._records: dict[str, IdentityRecord] = {}
        self._lock = threading.Lock()

    def exists(self, principal: str) -> bool:
        validate_principal(principal)
        with self._lock:
            return principal in self._records

    def get(self, principal: str) -> IdentityRecord:
        validate_principal(principal)
        with self._lock:
            record = self._records.get(principal)
        if record is None:
            raise IdentityNotFoundError(
                f"No identity found for principal: {principal}", principal=principal
            )
        return record

    def put(self, principal: str, record: IdentityRecord) -> None:
        validate_principal(principal)
        with self._lock:
            self._records[principal] = record

    def list(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
