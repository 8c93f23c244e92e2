import boto3
import pytest
from moto import mock_aws

from inventory_probe.adapters import ClientAPIAdapter, ResourceAPIAdapter
from inventory_probe.core.config import ProbeConfig
from inventory_probe.core.credentials import SessionCredentialProvider

REGION = "us-east-1"


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS Credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("PROBE_VISIBILITY_TIMEOUT", raising=False)


@pytest.fixture
def mocked_aws(aws_credentials):
    with mock_aws():
        yield


@pytest.fixture
def probe_config(aws_credentials) -> ProbeConfig:
    return ProbeConfig(region=REGION, visibility_timeout=5.0, poll_interval=0.1)


@pytest.fixture
def credentials(mocked_aws):
    return SessionCredentialProvider(REGION).resolve()


@pytest.fixture
def client_adapter(probe_config, credentials) -> ClientAPIAdapter:
    return ClientAPIAdapter(probe_config, credentials)


@pytest.fixture
def resource_adapter(probe_config, credentials) -> ResourceAPIAdapter:
    return ResourceAPIAdapter(probe_config, credentials)


@pytest.fixture
def ec2_client(mocked_aws):
    return boto3.client("ec2", region_name=REGION)


@pytest.fixture
def s3_client(mocked_aws):
    return boto3.client("s3", region_name=REGION)
