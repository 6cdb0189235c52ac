"""Tests for CAEndpoint and Fabric connection profile loading."""

import json

import pytest
import yaml
from pydantic import ValidationError

from idwallet.ca.endpoint import (
    CAEndpoint,
    ConnectionProfile,
    load_connection_profile,
    split_pem_bundle,
)
from idwallet.exceptions import ConfigurationError

GARBAGE_ROOT = "-----BEGIN CERTIFICATE-----\nnotbase64!!\n-----END CERTIFICATE-----"


def _profile(ca_pem: str) -> dict:
    return {
        "name": "test-network-org2",
        "version": "1.0.0",
        "organizations": {
            "Org2": {
                "mspid": "Org2MSP",
                "peers": ["peer0.org2.example.com"],
                "certificateAuthorities": ["ca.org2.example.com"],
            },
        },
        "certificateAuthorities": {
            "ca.org2.example.com": {
                "url": "https://localhost:8054/",
                "caName": "ca-org2",
                "tlsCACerts": {"pem": [ca_pem]},
                "httpOptions": {"verify": False},
            },
            "ca.orphan.example.com": {
                "url": "https://localhost:9054",
            },
        },
    }


@pytest.fixture
def profile_file(tmp_path, fake_ca):
    path = tmp_path / "connection-org2.yaml"
    path.write_text(yaml.safe_dump(_profile(fake_ca.ca_pem)))
    return path


class TestCAEndpoint:
    """Validation of CAEndpoint."""

    def test_defaults(self):
        endpoint = CAEndpoint(url="https://localhost:8054")

        assert endpoint.ca_name is None
        assert endpoint.trusted_roots == []
        assert endpoint.verify is True
        assert endpoint.timeout_seconds == 10.0

    def test_trailing_slash_stripped(self):
        endpoint = CAEndpoint(url="https://localhost:8054/")
        assert endpoint.enroll_url == "https://localhost:8054/api/v1/enroll"

    @pytest.mark.parametrize("url", ["", "localhost:8054", "ftp://ca"])
    def test_rejects_bad_url(self, url):
        with pytest.raises(ValidationError):
            CAEndpoint(url=url)

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            CAEndpoint(url="https://localhost:8054", timeout_seconds=0)

    def test_rejects_unparseable_trusted_root(self):
        with pytest.raises(ValidationError, match="not a PEM certificate"):
            CAEndpoint(url="https://localhost:8054", trusted_roots=[GARBAGE_ROOT])


class TestConnectionProfile:
    """Loading CA endpoints from connection profiles."""

    def test_ca_endpoint(self, profile_file, fake_ca):
        profile = load_connection_profile(profile_file)
        endpoint = profile.ca_endpoint("ca.org2.example.com", timeout_seconds=3)

        assert endpoint.url == "https://localhost:8054"
        assert endpoint.ca_name == "ca-org2"
        assert endpoint.trusted_roots == [fake_ca.ca_pem.strip()]
        assert endpoint.verify is False
        assert endpoint.timeout_seconds == 3

    def test_pem_as_string(self, fake_ca):
        data = _profile(fake_ca.ca_pem)
        data["certificateAuthorities"]["ca.org2.example.com"]["tlsCACerts"] = {
            "pem": fake_ca.ca_pem,
        }
        endpoint = ConnectionProfile.from_dict(data).ca_endpoint("ca.org2.example.com")

        assert len(endpoint.trusted_roots) == 1

    def test_pem_from_relative_path(self, tmp_path, fake_ca):
        (tmp_path / "tls").mkdir()
        (tmp_path / "tls" / "ca.pem").write_text(fake_ca.ca_pem)
        data = _profile(fake_ca.ca_pem)
        data["certificateAuthorities"]["ca.org2.example.com"]["tlsCACerts"] = {
            "path": "tls/ca.pem",
        }
        path = tmp_path / "profile.json"
        path.write_text(json.dumps(data))

        endpoint = load_connection_profile(path).ca_endpoint("ca.org2.example.com")
        assert endpoint.trusted_roots == [fake_ca.ca_pem.strip()]

    def test_unparseable_pem_is_config_error(self, fake_ca):
        data = _profile(fake_ca.ca_pem)
        data["certificateAuthorities"]["ca.org2.example.com"]["tlsCACerts"] = {
            "pem": GARBAGE_ROOT,
        }
        profile = ConnectionProfile.from_dict(data)

        with pytest.raises(ConfigurationError, match="ca.org2.example.com"):
            profile.ca_endpoint("ca.org2.example.com")

    def test_missing_pem_path(self, tmp_path, fake_ca):
        data = _profile(fake_ca.ca_pem)
        data["certificateAuthorities"]["ca.org2.example.com"]["tlsCACerts"] = {
            "path": "missing.pem",
        }
        path = tmp_path / "profile.yaml"
        path.write_text(yaml.safe_dump(data))

        with pytest.raises(ConfigurationError, match="missing.pem"):
            load_connection_profile(path).ca_endpoint("ca.org2.example.com")

    def test_verify_defaults_to_true(self, profile_file):
        endpoint = load_connection_profile(profile_file).ca_endpoint("ca.orphan.example.com")

        assert endpoint.verify is True
        assert endpoint.trusted_roots == []

    def test_unknown_ca(self, profile_file):
        profile = load_connection_profile(profile_file)

        with pytest.raises(ConfigurationError, match="ca.org9.example.com"):
            profile.ca_endpoint("ca.org9.example.com")

    def test_ca_without_url(self, fake_ca):
        data = _profile(fake_ca.ca_pem)
        del data["certificateAuthorities"]["ca.org2.example.com"]["url"]

        with pytest.raises(ConfigurationError, match="Invalid certificate authority"):
            ConnectionProfile.from_dict(data).ca_endpoint("ca.org2.example.com")

    def test_msp_id_for_ca(self, profile_file):
        profile = load_connection_profile(profile_file)
        assert profile.msp_id_for_ca("ca.org2.example.com") == "Org2MSP"

    def test_msp_id_for_orphan_ca(self, profile_file):
        profile = load_connection_profile(profile_file)

        with pytest.raises(ConfigurationError, match="No organization"):
            profile.msp_id_for_ca("ca.orphan.example.com")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_connection_profile(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("certificateAuthorities: [unclosed")

        with pytest.raises(ConfigurationError, match="Invalid connection profile"):
            load_connection_profile(path)

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            ConnectionProfile.from_dict(["a", "b"])


class TestSplitPemBundle:
    """Tests for PEM bundle splitting."""

    def test_splits_bundle(self, fake_ca):
        bundle = fake_ca.ca_pem + "\n" + fake_ca.ca_pem
        assert len(split_pem_bundle(bundle)) == 2

    def test_ignores_non_pem(self):
        assert split_pem_bundle("hello") == []
