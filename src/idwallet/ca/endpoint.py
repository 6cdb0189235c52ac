# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
CA Endpoint and Connection Profiles

A CAEndpoint is the validated set of parameters needed to reach a CA.
It is usually built from a Fabric connection profile, the YAML (or JSON)
document that describes a network's CAs and organizations:

    certificateAuthorities:
      ca.org2.example.com:
        url: https://localhost:8054
        caName: ca-org2
        tlsCACerts:
          pem: |
            -----BEGIN CERTIFICATE-----
            ...
        httpOptions:
          verify: false
    organizations:
      Org2:
        mspid: Org2MSP
        certificateAuthorities:
          - ca.org2.example.com
"""

import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from cryptography import x509
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

_PEM_BLOCK = re.compile(
    r"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----", re.DOTALL
)


def split_pem_bundle(bundle: str) -> list[str]:
    """Split a PEM bundle into individual certificate blocks."""
    return [m.group(0) for m in _PEM_BLOCK.finditer(bundle)]


class CAEndpoint(BaseModel):
    """Connection parameters for a Certificate Authority.

    Attributes:
        url: Base URL of the CA (``https://host:port``).
        ca_name: Name of the CA instance on a multi-CA server.
        trusted_roots: PEM certificates trusted for the CA's TLS certificate.
            When empty, the system trust store is used.
        verify: Whether to verify the CA's TLS certificate at all.
        timeout_seconds: Bound on the enrollment request.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="CA base URL")
    ca_name: Optional[str] = Field(None, description="CA instance name")
    trusted_roots: list[str] = Field(default_factory=list, description="PEM trust roots")
    verify: bool = Field(default=True, description="Verify the CA TLS certificate")
    timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="Request timeout"
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"CA url must be http(s): {v}")
        return v.rstrip("/")

    @field_validator("trusted_roots")
    @classmethod
    def validate_trusted_roots(cls, v: list[str]) -> list[str]:
        for index, pem in enumerate(v):
            try:
                x509.load_pem_x509_certificate(pem.encode("utf-8"))
            except ValueError as exc:
                raise ValueError(f"Trusted root {index} is not a PEM certificate: {exc}") from exc
        return v

    @property
    def enroll_url(self) -> str:
        return f"{self.url}/api/v1/enroll"


class ConnectionProfile(BaseModel):
    """The parts of a Fabric connection profile used for enrollment."""

    source: Optional[str] = Field(None, description="File the profile was read from")
    certificate_authorities: dict[str, dict[str, Any]] = Field(default_factory=dict)
    organizations: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any, source: Optional[str] = None) -> "ConnectionProfile":
        if not isinstance(data, dict):
            raise ConfigurationError("Connection profile must be a mapping")
        try:
            return cls(
                source=source,
                certificate_authorities=data.get("certificateAuthorities") or {},
                organizations=data.get("organizations") or {},
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid connection profile: {exc}") from exc

    def _ca_section(self, name: str) -> dict[str, Any]:
        try:
            return self.certificate_authorities[name]
        except KeyError:
            known = ", ".join(sorted(self.certificate_authorities)) or "none"
            raise ConfigurationError(
                f"Certificate authority '{name}' not found in connection profile (known: {known})"
            ) from None

    def _trusted_roots(self, tls: dict[str, Any]) -> list[str]:
        pem = tls.get("pem")
        if pem:
            blocks = pem if isinstance(pem, list) else [pem]
            return [cert for block in blocks for cert in split_pem_bundle(block)]

        path = tls.get("path")
        if path:
            cert_path = Path(path)
            if not cert_path.is_absolute() and self.source:
                cert_path = Path(self.source).parent / cert_path
            try:
                return split_pem_bundle(cert_path.read_text(encoding="utf-8"))
            except OSError as exc:
                raise ConfigurationError(
                    f"Cannot read TLS CA certificate {cert_path}: {exc}"
                ) from exc
        return []

    def ca_endpoint(
        self,
        name: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> CAEndpoint:
        """Build a validated CAEndpoint for the CA called ``name``.

        Raises:
            ConfigurationError: If the CA is unknown or its entry is invalid.
        """
        section = self._ca_section(name)
        tls = section.get("tlsCACerts") or {}
        http_options = section.get("httpOptions") or {}

        try:
            endpoint = CAEndpoint(
                url=section.get("url") or "",
                ca_name=section.get("caName"),
                trusted_roots=self._trusted_roots(tls),
                verify=http_options.get("verify", True),
                timeout_seconds=timeout_seconds,
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid certificate authority '{name}': {exc}") from exc

        logger.debug(
            "Resolved CA %s to %s (ca_name=%s, %d trusted roots)",
            name,
            endpoint.url,
            endpoint.ca_name,
            len(endpoint.trusted_roots),
        )
        return endpoint

    def msp_id_for_ca(self, name: str) -> str:
        """Return the MSP id of the organization served by CA ``name``.

        Raises:
            ConfigurationError: If no organization lists the CA.
        """
        self._ca_section(name)
        for org_name, org in self.organizations.items():
            if name in (org.get("certificateAuthorities") or []):
                mspid = org.get("mspid")
                if mspid:
                    return mspid
                raise ConfigurationError(f"Organization '{org_name}' has no mspid")
        raise ConfigurationError(f"No organization uses certificate authority '{name}'")


def load_connection_profile(path: Union[str, Path]) -> ConnectionProfile:
    """Load a connection profile from a YAML or JSON file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    profile_path = Path(path)
    try:
        with open(profile_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read connection profile {profile_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid connection profile {profile_path}: {exc}") from exc

    return ConnectionProfile.from_dict(data, source=str(profile_path))
