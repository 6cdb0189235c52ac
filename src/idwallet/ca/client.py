# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
CA Enrollment Client

Performs the Fabric CA ``enroll`` exchange: a fresh ECDSA P-256 key is
generated locally, a CSR for ``CN=<principal>`` is sent to
``POST /api/v1/enroll`` with HTTP Basic credentials, and the signed
certificate in the response is paired with the key into an IdentityRecord.

The private key never leaves this process; only the CSR is sent.
"""

import base64
import binascii
import logging
import ssl
from typing import Any, Optional, Sequence, Union

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from pydantic import ValidationError

from ..exceptions import (
    AuthenticationFailedError,
    MalformedResponseError,
    TransportError,
)
from ..identity.record import X509_KIND, IdentityRecord
from .endpoint import CAEndpoint

logger = logging.getLogger(__name__)


def build_ssl_context(endpoint: CAEndpoint) -> Union[ssl.SSLContext, bool]:
    """Create the TLS verification setting for ``endpoint``.

    Returns ``False`` when verification is disabled, otherwise a client
    context trusting ``endpoint.trusted_roots`` (or the system store when
    none are configured).
    """
    if not endpoint.verify:
        logger.warning("TLS verification is disabled for CA %s", endpoint.url)
        return False

    if endpoint.trusted_roots:
        ctx = ssl.create_default_context(cadata="\n".join(endpoint.trusted_roots))
    else:
        ctx = ssl.create_default_context()
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    return ctx


def build_csr(private_key: ec.EllipticCurvePrivateKey, principal: str) -> bytes:
    """Build a PEM CSR for ``principal`` signed with ``private_key``."""
    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, principal),
        ]))
        .sign(private_key, hashes.SHA256())
    )
    return csr.public_bytes(serialization.Encoding.PEM)


def _public_key_der(public_key) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _error_messages(payload: Any) -> str:
    """Join the ``errors`` list of a CA response envelope."""
    if not isinstance(payload, dict):
        return ""
    errors = payload.get("errors") or []
    parts = []
    for err in errors:
        if isinstance(err, dict):
            parts.append(f"{err.get('code', '?')}: {err.get('message', '')}")
        else:
            parts.append(str(err))
    return "; ".join(parts)


class EnrollmentClient:
    """
    Client for the CA enrollment protocol.

    Args:
        http_client: Optional ``httpx.Client`` to send requests with. It is
            reused and never closed by this class, and its own TLS settings
            apply. Without one, a client is created per enrollment from the
            endpoint's trust roots.
    """

    def __init__(self, http_client: Optional[httpx.Client] = None) -> None:
        self._http_client = http_client

    def enroll(
        self,
        endpoint: CAEndpoint,
        principal: str,
        secret: str,
        membership_id: str,
        *,
        profile: Optional[str] = None,
        attributes: Optional[Sequence[str]] = None,
    ) -> IdentityRecord:
        """
        Enroll ``principal`` with the CA and return the issued identity.

        Args:
            endpoint: CA to contact.
            principal: Enrollment id registered with the CA.
            secret: Enrollment secret for ``principal``.
            membership_id: MSP id to tag the identity with.
            profile: Optional CA signing profile (e.g. ``"tls"``).
            attributes: Optional attribute names to request in the
                certificate; they are requested as optional.

        Returns:
            IdentityRecord with the PEM certificate and PKCS#8 private key.

        Raises:
            AuthenticationFailedError: The CA rejected the request.
            TransportError: The CA could not be reached or answered 5xx.
            MalformedResponseError: The response is not a usable identity.
        """
        private_key = ec.generate_private_key(ec.SECP256R1())

        body: dict[str, Any] = {
            "certificate_request": build_csr(private_key, principal).decode("ascii"),
        }
        if endpoint.ca_name:
            body["caname"] = endpoint.ca_name
        if profile:
            body["profile"] = profile
        if attributes:
            body["attr_reqs"] = [{"name": name, "optional": True} for name in attributes]

        logger.info("Enrolling %s with CA %s", principal, endpoint.url)
        response = self._post(endpoint, principal, secret, body)
        certificate = self._parse_response(response, principal)

        if _public_key_der(certificate.public_key()) != _public_key_der(private_key.public_key()):
            raise MalformedResponseError(
                "CA returned a certificate for a different key", principal=principal
            )

        key_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        try:
            record = IdentityRecord(
                certificate=certificate.public_bytes(serialization.Encoding.PEM),
                private_key=key_pem,
                membership_id=membership_id,
                kind=X509_KIND,
            )
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Cannot build identity from CA response: {exc}", principal=principal
            ) from exc

        logger.info(
            "CA issued certificate serial %x for %s (expires %s)",
            certificate.serial_number,
            principal,
            certificate.not_valid_after_utc.isoformat(),
        )
        return record

    def _post(
        self,
        endpoint: CAEndpoint,
        principal: str,
        secret: str,
        body: dict[str, Any],
    ) -> httpx.Response:
        try:
            if self._http_client is not None:
                return self._http_client.post(
                    endpoint.enroll_url,
                    json=body,
                    auth=(principal, secret),
                    timeout=endpoint.timeout_seconds,
                )
            with httpx.Client(verify=build_ssl_context(endpoint)) as client:
                return client.post(
                    endpoint.enroll_url,
                    json=body,
                    auth=(principal, secret),
                    timeout=endpoint.timeout_seconds,
                )
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"Timed out after {endpoint.timeout_seconds}s waiting for CA {endpoint.url}",
                principal=principal,
            ) from exc
        except httpx.TransportError as exc:
            raise TransportError(
                f"Cannot reach CA {endpoint.url}: {exc}", principal=principal
            ) from exc

    def _parse_response(self, response: httpx.Response, principal: str) -> x509.Certificate:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationFailedError(
                f"CA rejected enrollment credentials (HTTP {status}) {_error_messages(payload)}".rstrip(),
                principal=principal,
            )
        if status >= 500:
            raise TransportError(
                f"CA returned HTTP {status} {_error_messages(payload)}".rstrip(),
                principal=principal,
            )
        if status >= 400:
            raise AuthenticationFailedError(
                f"CA rejected enrollment request (HTTP {status}) {_error_messages(payload)}".rstrip(),
                principal=principal,
            )

        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"CA response is not a JSON object (HTTP {status})", principal=principal
            )
        if not payload.get("success"):
            errors = _error_messages(payload)
            if errors:
                raise AuthenticationFailedError(
                    f"CA rejected enrollment request: {errors}", principal=principal
                )
            raise MalformedResponseError(
                "CA response reports failure without errors", principal=principal
            )

        result = payload.get("result")
        encoded = result.get("Cert") if isinstance(result, dict) else None
        if not isinstance(encoded, str) or not encoded:
            raise MalformedResponseError("CA response has no certificate", principal=principal)

        try:
            cert_pem = base64.b64decode(encoded, validate=True)
            certificate = x509.load_pem_x509_certificate(cert_pem)
        except (binascii.Error, ValueError) as exc:
            raise MalformedResponseError(
                f"CA returned an unreadable certificate: {exc}", principal=principal
            ) from exc

        server_info = result.get("ServerInfo") or {}
        if isinstance(server_info, dict) and server_info.get("CAName"):
            logger.debug("Certificate for %s issued by CA %s", principal, server_info["CAName"])
        return certificate
