import pytest

from media_gateway.config import Settings, settings
from media_gateway.models.schemas import Credentials
from tests.fakes import FakeClock, FakeOracle, FakeSigner

def pytest_collection_modifyitems(config, items):
    for item in items:
        if "integration_tests" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        elif "unit_tests" in item.nodeid:
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_signer():
    return FakeSigner()


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def credentials():
    return Credentials(session_id="s.session123", token="t.token456")


@pytest.fixture
def gateway_settings():
    return Settings(
        s3_bucket_name="media-bucket",
        aws_region="us-east-1",
        s3_key_prefix="uploads/",
        upload_url_expiry_seconds=600,
        download_url_expiry_seconds=300,
        allowed_extensions=None,
        inline_extensions=["mp3", "mp4", "webm"],
        access_oracle_url="http://oracle.internal",
    )


@pytest.fixture
def configured_settings(monkeypatch, gateway_settings):
    """Apply gateway_settings to the process-wide settings object for app tests."""
    for field in Settings.model_fields:
        monkeypatch.setattr(settings, field, getattr(gateway_settings, field))
    return settings
