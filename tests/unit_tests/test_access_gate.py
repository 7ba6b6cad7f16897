import logging
import pytest

from media_gateway.models.errors import AccessDeniedError, DependencyUnavailableError, UnauthenticatedError
from media_gateway.models.schemas import Credentials
from media_gateway.services.access_gate import AccessGate
from tests.fakes import FakeOracle


@pytest.fixture
def audit_log(caplog):
    caplog.set_level(logging.DEBUG, logger="MediaGateway")
    return caplog


@pytest.mark.asyncio
async def test_grant_returns_identity_and_logs_principal(fake_oracle, credentials, audit_log):
    gate = AccessGate(fake_oracle)

    identity = await gate.authorize("padA", credentials, "10.0.0.1", action="UPLOAD")

    assert identity.principal == "a.author1"
    assert identity.credentials == credentials
    assert fake_oracle.calls == [("padA", credentials)]
    assert 'UPLOAD_GRANTED' in audit_log.text
    assert 'author="a.author1"' in audit_log.text
    assert 'ip="10.0.0.1"' in audit_log.text


@pytest.mark.asyncio
async def test_missing_oracle_fails_closed(credentials, audit_log):
    gate = AccessGate(None)

    with pytest.raises(DependencyUnavailableError) as excinfo:
        await gate.authorize("padA", credentials, "10.0.0.1", action="DOWNLOAD")

    assert excinfo.value.status_code == 500
    assert gate.available is False
    assert "DOWNLOAD_UNAVAILABLE" in audit_log.text


@pytest.mark.asyncio
async def test_policy_deny_raises_access_denied(credentials, audit_log):
    gate = AccessGate(FakeOracle(grant=False))

    with pytest.raises(AccessDeniedError) as excinfo:
        await gate.authorize("padA", credentials, "10.0.0.1", action="UPLOAD")

    assert excinfo.value.status_code == 403
    assert 'reason="access_denied"' in audit_log.text


@pytest.mark.asyncio
async def test_oracle_error_looks_like_deny_to_caller(credentials, audit_log):
    denied = AccessGate(FakeOracle(grant=False))
    broken = AccessGate(FakeOracle(error=ConnectionError("oracle down")))

    with pytest.raises(AccessDeniedError) as policy:
        await denied.authorize("padA", credentials, "10.0.0.1", action="UPLOAD")
    with pytest.raises(AccessDeniedError) as operational:
        await broken.authorize("padA", credentials, "10.0.0.1", action="UPLOAD")

    assert policy.value.to_response() == operational.value.to_response()
    assert policy.value.status_code == operational.value.status_code
    # The log still tells the two apart
    assert 'reason="oracle_error"' in audit_log.text
    assert "error=\"ConnectionError('oracle down')\"" in audit_log.text


@pytest.mark.asyncio
async def test_anonymous_caller_is_denied_by_oracle():
    gate = AccessGate(FakeOracle())

    with pytest.raises(AccessDeniedError):
        await gate.authorize("padA", Credentials(), "10.0.0.1", action="UPLOAD")


@pytest.mark.asyncio
async def test_reject_anonymous_short_circuits_before_oracle():
    oracle = FakeOracle()
    gate = AccessGate(oracle, reject_anonymous=True)

    with pytest.raises(UnauthenticatedError) as excinfo:
        await gate.authorize("padA", Credentials(), "10.0.0.1", action="UPLOAD")

    assert excinfo.value.status_code == 401
    assert oracle.calls == []


@pytest.mark.asyncio
async def test_credentials_never_reach_the_audit_log(fake_oracle, audit_log):
    creds = Credentials(session_id="s.secret-session", token="t.secret-token", bearer="secret-bearer")
    gate = AccessGate(fake_oracle)

    await gate.authorize("padA", creds, "10.0.0.1", action="UPLOAD")

    assert "secret" not in audit_log.text


@pytest.mark.asyncio
async def test_quotes_in_resource_id_cannot_forge_audit_fields(credentials, audit_log):
    gate = AccessGate(FakeOracle(grant=False))

    with pytest.raises(AccessDeniedError):
        await gate.authorize('padA" author="admin', credentials, "10.0.0.1", action="UPLOAD")

    record = audit_log.records[-1].getMessage()
    assert 'resource="padA\\" author=\\"admin"' in record
    assert ' author="admin"' not in record
    assert record.count("resource=") == 1
