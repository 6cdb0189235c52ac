# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Identity Record

The durable artifact produced by a successful enrollment: an X.509
certificate, its private key, and the membership (MSP) id it is scoped to.
Serialized in the Fabric wallet JSON layout so wallets written here can be
read by other Fabric SDKs and vice versa.
"""

from typing import Any

from cryptography import x509
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import InvalidPrincipalError

X509_KIND = "X.509"
WALLET_FORMAT_VERSION = 1


def validate_principal(principal: str) -> str:
    """Check that a principal id is usable as a wallet label.

    Raises:
        InvalidPrincipalError: If the label is empty or would escape the
            wallet directory.
    """
    if not principal or not principal.strip():
        raise InvalidPrincipalError("Principal id must not be empty")
    if principal in (".", "..") or any(c in principal for c in ("/", "\\", "\x00")):
        raise InvalidPrincipalError(
            f"Principal id contains characters not allowed in a label: {principal!r}",
            principal=principal,
        )
    return principal


class IdentityRecord(BaseModel):
    """An issued identity as stored in a wallet.

    ``private_key`` is excluded from ``repr`` so records can be logged
    without leaking key material.
    """

    model_config = ConfigDict(frozen=True)

    certificate: bytes = Field(..., description="PEM-encoded X.509 certificate")
    private_key: bytes = Field(..., repr=False, description="PEM-encoded private key")
    membership_id: str = Field(..., description="MSP id the identity belongs to")
    kind: str = Field(default=X509_KIND, description="Identity scheme tag")

    @field_validator("certificate", "private_key")
    @classmethod
    def validate_material(cls, v: bytes) -> bytes:
        if not v:
            raise ValueError("Credential material must not be empty")
        try:
            v.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("Credential material must be PEM text") from exc
        return v

    @field_validator("membership_id")
    @classmethod
    def validate_membership_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("membership_id must not be empty")
        return v

    def to_wallet_dict(self) -> dict[str, Any]:
        """Render the record in the Fabric wallet JSON layout."""
        return {
            "credentials": {
                "certificate": self.certificate.decode("utf-8"),
                "privateKey": self.private_key.decode("utf-8"),
            },
            "mspId": self.membership_id,
            "type": self.kind,
            "version": WALLET_FORMAT_VERSION,
        }

    @classmethod
    def from_wallet_dict(cls, data: dict[str, Any]) -> "IdentityRecord":
        """Parse a record from the Fabric wallet JSON layout.

        Raises:
            ValueError: If a field is missing or has the wrong type, or the
                version is unknown.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Wallet record must be a JSON object, got {type(data).__name__}")

        version = data.get("version", WALLET_FORMAT_VERSION)
        if version != WALLET_FORMAT_VERSION:
            raise ValueError(f"Unsupported wallet record version: {version}")

        credentials = data.get("credentials")
        if not isinstance(credentials, dict):
            raise ValueError("Wallet record has no credentials")
        try:
            certificate = credentials["certificate"]
            private_key = credentials["privateKey"]
            membership_id = data["mspId"]
        except KeyError as exc:
            raise ValueError(f"Wallet record is missing field {exc.args[0]}") from exc
        for name, value in (
            ("certificate", certificate),
            ("privateKey", private_key),
            ("mspId", membership_id),
        ):
            if not isinstance(value, str):
                raise ValueError(f"Wallet record field {name} must be a string")

        return cls(
            certificate=certificate.encode("utf-8"),
            private_key=private_key.encode("utf-8"),
            membership_id=membership_id,
            kind=data.get("type", X509_KIND),
        )

    def load_certificate(self) -> x509.Certificate:
        """Parse the stored PEM certificate."""
        return x509.load_pem_x509_certificate(self.certificate)
