# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
MSP Directory Import

Reads an identity that was issued out of band (for example by
``cryptogen`` or ``fabric-ca-client``) from a Fabric MSP directory and
places it in a wallet. The directory holds the certificate under
``signcerts/cert.pem`` and exactly one private key file under
``keystore/``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from pydantic import ValidationError

from ..exceptions import MSPDirectoryError
from .record import IdentityRecord

if TYPE_CHECKING:
    from ..wallet.provider import Wallet
    from ..workflow import EnrollmentState

logger = logging.getLogger(__name__)


def _certificate_pem(data: bytes) -> tuple[bytes, x509.Certificate]:
    """Parse a PEM or DER certificate, returning PEM bytes and the certificate."""
    try:
        return data, x509.load_pem_x509_certificate(data)
    except ValueError:
        cert = x509.load_der_x509_certificate(data)
        return cert.public_bytes(serialization.Encoding.PEM), cert


def _private_key_pem(data: bytes) -> tuple[bytes, PrivateKeyTypes]:
    """Parse an unencrypted PEM or DER private key, returning PKCS8 PEM for DER."""
    try:
        return data, serialization.load_pem_private_key(data, password=None)
    except ValueError:
        key = serialization.load_der_private_key(data, password=None)
        pem = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        return pem, key


def _public_key_der(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def load_msp_identity(msp_dir: Union[str, Path], membership_id: str) -> IdentityRecord:
    """Build an IdentityRecord from an MSP directory.

    DER material is converted to PEM. The private key must be unencrypted
    and must belong to the certificate.

    Args:
        msp_dir: Path to the MSP directory.
        membership_id: MSP id to tag the identity with.

    Returns:
        The identity read from disk.

    Raises:
        MSPDirectoryError: If the certificate is missing or unreadable, the
            keystore does not contain exactly one usable key, or the key
            does not match the certificate.
    """
    msp_path = Path(msp_dir)
    cert_path = msp_path / "signcerts" / "cert.pem"
    keystore = msp_path / "keystore"

    try:
        certificate = cert_path.read_bytes()
    except OSError as exc:
        raise MSPDirectoryError(f"Cannot read certificate {cert_path}: {exc}") from exc

    try:
        key_files = [p for p in keystore.iterdir() if p.is_file()]
    except OSError as exc:
        raise MSPDirectoryError(f"Cannot read keystore {keystore}: {exc}") from exc
    if len(key_files) != 1:
        raise MSPDirectoryError(
            f"Keystore {keystore} should contain one file, found {len(key_files)}"
        )

    try:
        private_key = key_files[0].read_bytes()
    except OSError as exc:
        raise MSPDirectoryError(f"Cannot read private key {key_files[0]}: {exc}") from exc

    try:
        certificate, cert = _certificate_pem(certificate)
    except ValueError as exc:
        raise MSPDirectoryError(
            f"Invalid MSP identity in {msp_path}: {cert_path} is not an X.509 certificate"
        ) from exc
    try:
        private_key, key = _private_key_pem(private_key)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise MSPDirectoryError(
            f"Invalid MSP identity in {msp_path}: {key_files[0]} is not an unencrypted private key"
        ) from exc
    if _public_key_der(cert.public_key()) != _public_key_der(key.public_key()):
        raise MSPDirectoryError(
            f"Invalid MSP identity in {msp_path}: private key does not match the certificate"
        )

    try:
        return IdentityRecord(
            certificate=certificate,
            private_key=private_key,
            membership_id=membership_id,
        )
    except ValidationError as exc:
        raise MSPDirectoryError(f"Invalid MSP identity in {msp_path}: {exc}") from exc


def import_msp_identity(
    wallet: Wallet,
    principal: str,
    msp_dir: Union[str, Path],
    membership_id: str,
) -> EnrollmentState:
    """Populate ``wallet`` with the identity in ``msp_dir`` unless present.

    Returns:
        ``EnrollmentState.ALREADY_ENROLLED`` if the wallet already holds
        ``principal``, otherwise ``EnrollmentState.DONE``.
    """
    from ..workflow import EnrollmentState

    if wallet.exists(principal):
        logger.info("Identity %s already exists in the wallet", principal)
        return EnrollmentState.ALREADY_ENROLLED

    record = load_msp_identity(msp_dir, membership_id)
    wallet.put(principal, record)
    logger.info("Imported identity %s from %s", principal, msp_dir)
    return EnrollmentState.DONE
