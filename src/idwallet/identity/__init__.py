"""
Identity records

Issued X.509 identities, their wallet serialization, and import from
Fabric MSP directories.
"""

from .record import IdentityRecord, X509_KIND, validate_principal
from .msp import load_msp_identity, import_msp_identity

__all__ = [
    "IdentityRecord",
    "X509_KIND",
    "validate_principal",
    "load_msp_identity",
    "import_msp_identity",
]
