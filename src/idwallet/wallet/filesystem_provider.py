# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
File System Wallet.

Stores one ``<principal>.id`` JSON file per identity in a directory, in
the same layout as the Fabric SDK file system wallets. Writes go to a temp
file in the wallet directory and are moved into place with ``os.replace``,
so concurrent readers and writers in other processes only ever see a
complete record or none.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from ..exceptions import IdentityNotFoundError, StoreUnavailableError
from ..identity.record import IdentityRecord, validate_principal
from .provider import Wallet

logger = logging.getLogger(__name__)

ID_FILE_SUFFIX = ".id"
DIR_MODE = 0o700
FILE_MODE = 0o600


class FileSystemWallet(Wallet):
    """
    Durable wallet backed by a directory of JSON identity files.

    Identity files are created with mode 0600 since they hold private keys.

    Example:
        >>> wallet = FileSystemWallet("/tmp/wallet")  # doctest: +SKIP
        >>> wallet.exists("yauheni")  # doctest: +SKIP
        False
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def _path_for(self, principal: str) -> Path:
        validate_principal(principal)
        return self.directory / f"{principal}{ID_FILE_SUFFIX}"

    def exists(self, principal: str) -> bool:
        path = self._path_for(principal)
        try:
            return path.is_file()
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot access wallet {self.directory}: {exc}", principal=principal
            ) from exc

    def get(self, principal: str) -> IdentityRecord:
        path = self._path_for(principal)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as exc:
            raise IdentityNotFoundError(
                f"No identity found for principal: {principal}", principal=principal
            ) from exc
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot read identity file {path}: {exc}", principal=principal
            ) from exc

        try:
            return IdentityRecord.from_wallet_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, ValidationError) as exc:
            raise StoreUnavailableError(
                f"Identity file {path} is corrupt: {exc}", principal=principal
            ) from exc

    def _ensure_directory(self) -> None:
        missing = []
        directory = self.directory
        while not directory.exists():
            missing.append(directory)
            directory = directory.parent
        for directory in reversed(missing):
            directory.mkdir(mode=DIR_MODE, exist_ok=True)

    def _sync_directory(self) -> None:
        fd = os.open(self.directory, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    def put(self, principal: str, record: IdentityRecord) -> None:
        path = self._path_for(principal)
        payload = json.dumps(record.to_wallet_dict(), indent=2).encode("utf-8")

        tmp_path = None
        try:
            self._ensure_directory()
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{principal}.", suffix=".tmp", dir=self.directory
            )
            with os.fdopen(fd, "wb") as fh:
                os.fchmod(fh.fileno(), FILE_MODE)
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
            self._sync_directory()
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot write identity file {path}: {exc}", principal=principal
            ) from exc
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning("Could not remove temp file %s", tmp_path)

        logger.debug("Stored identity %s in %s", principal, path)

    def list(self) -> list[str]:
        try:
            return sorted(
                p.name[: -len(ID_FILE_SUFFIX)]
                for p in self.directory.glob(f"*{ID_FILE_SUFFIX}")
                if p.is_file()
            )
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot list wallet {self.directory}: {exc}"
            ) from exc
