"""
Certificate Authority access

CA endpoints, Fabric connection profiles, and the enrollment client.
"""

from .endpoint import CAEndpoint, ConnectionProfile, load_connection_profile
from .client import EnrollmentClient, build_csr, build_ssl_context

__all__ = [
    "CAEndpoint",
    "ConnectionProfile",
    "load_connection_profile",
    "EnrollmentClient",
    "build_csr",
    "build_ssl_context",
]
