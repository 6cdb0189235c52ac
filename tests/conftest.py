"""Shared fixtures: a throwaway Fabric-style CA served through httpx.MockTransport."""

import base64
import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from idwallet.ca.client import EnrollmentClient
from idwallet.ca.endpoint import CAEndpoint
from idwallet.identity.record import IdentityRecord


def _self_signed(key, common_name: str) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )


class FakeFabricCA:
    """Minimal Fabric CA ``/api/v1/enroll`` endpoint.

    Validates Basic credentials against ``users`` and signs the submitted
    CSR. ``override`` replaces the whole handler for failure scenarios.
    """

    def __init__(self, users: dict[str, str], ca_name: str = "ca-org2"):
        self.users = users
        self.ca_name = ca_name
        self.key = ec.generate_private_key(ec.SECP256R1())
        self.certificate = _self_signed(self.key, "ca.org2.example.com")
        self.requests: list[httpx.Request] = []
        self.override: Optional[Callable[[httpx.Request], httpx.Response]] = None
        self.sign_with_key = None

    @property
    def ca_pem(self) -> str:
        return self.certificate.public_bytes(serialization.Encoding.PEM).decode()

    def _credentials(self, request: httpx.Request) -> tuple[str, str]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Basic "):
            return "", ""
        user, _, secret = base64.b64decode(header[6:]).decode().partition(":")
        return user, secret

    def sign(self, csr: x509.CertificateSigningRequest) -> bytes:
        now = datetime.now(timezone.utc)
        public_key = (
            self.sign_with_key.public_key() if self.sign_with_key is not None else csr.public_key()
        )
        cert = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(self.certificate.subject)
            .public_key(public_key)
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + timedelta(days=365))
            .sign(self.key, hashes.SHA256())
        )
        return cert.public_bytes(serialization.Encoding.PEM)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.override is not None:
            return self.override(request)

        user, secret = self._credentials(request)
        if not user or self.users.get(user) != secret:
            return httpx.Response(401, json={
                "success": False,
                "result": None,
                "errors": [{"code": 20, "message": "Authentication failure"}],
                "messages": [],
            })

        body = json.loads(request.content)
        csr = x509.load_pem_x509_csr(body["certificate_request"].encode())
        return httpx.Response(201, json={
            "success": True,
            "result": {
                "Cert": base64.b64encode(self.sign(csr)).decode(),
                "ServerInfo": {
                    "CAName": body.get("caname", ""),
                    "CAChain": base64.b64encode(self.ca_pem.encode()).decode(),
                },
            },
            "errors": [],
            "messages": [],
        })

    def http_client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_ca():
    return FakeFabricCA(users={"yauheni": "yauhenipw", "admin": "adminpw"})


@pytest.fixture
def ca_endpoint():
    return CAEndpoint(url="https://localhost:8054", ca_name="ca-org2")


@pytest.fixture
def enrollment_client(fake_ca):
    http_client = fake_ca.http_client()
    yield EnrollmentClient(http_client=http_client)
    http_client.close()


@pytest.fixture
def sample_record(fake_ca):
    """A record whose certificate was issued by the fake CA."""
    key = ec.generate_private_key(ec.SECP256R1())
    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "yauheni")]))
        .sign(key, hashes.SHA256())
    )
    return IdentityRecord(
        certificate=fake_ca.sign(csr),
        private_key=key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ),
        membership_id="Org2MSP",
    )
