# tests/integration_tests/test_integration.py

import re
import pytest
from fastapi.testclient import TestClient
from urllib.parse import parse_qs, urlparse

from media_gateway.main import app, init_gateway
from media_gateway.models.schemas import SignOperation
from media_gateway.services.rate_limiter import SlidingWindowRateLimiter
from media_gateway.utils.validators import validate_object_id
from tests.fakes import FakeOracle

AUTH_COOKIES = {"Cookie": "sessionID=s.session123; token=t.token456"}
UPLOAD_KEY = re.compile(r"^uploads/padA/([a-f0-9-]{36}\.pdf)$")


@pytest.fixture
def test_client(configured_settings, fake_oracle, fake_signer, fake_clock):
    """Returns a TestClient with the gateway wired to fake collaborators."""
    limiter = SlidingWindowRateLimiter(max_requests=30, window_seconds=60, clock=fake_clock)
    with TestClient(app) as client:
        init_gateway(app, oracle=fake_oracle, signer=fake_signer, rate_limiter=limiter)
        yield client


class TestUploadThenDownload:
    """Upload intent followed by a download of the same object."""

    def test_pdf_round_trip(self, test_client, fake_signer):
        upload = test_client.get(
            "/resource/padA/upload-url",
            params={"name": "report.pdf", "type": "application/pdf"},
            headers=AUTH_COOKIES,
        )
        assert upload.status_code == 200
        body = upload.json()

        put_operation, put_key, _, _ = fake_signer.calls[0]
        assert put_operation == SignOperation.PUT
        match = UPLOAD_KEY.match(put_key)
        assert match
        object_id = match.group(1)
        assert validate_object_id(object_id)
        assert "padA" in body["downloadReference"]
        assert object_id in body["downloadReference"]

        # The reference is followed as-is
        download = test_client.get(body["downloadReference"], headers=AUTH_COOKIES, follow_redirects=False)

        assert download.status_code == 302
        get_operation, get_key, get_expiry, overrides = fake_signer.calls[1]
        assert get_operation == SignOperation.GET
        assert get_key == put_key
        assert get_expiry == 300
        assert overrides.content_disposition.startswith("attachment;")
        assert download.headers["location"] != body["uploadUrl"]

    def test_inline_media_round_trip(self, test_client, fake_signer):
        upload = test_client.get(
            "/resource/padA/upload-url",
            params={"name": "voice memo.mp3", "type": "audio/mpeg"},
            headers=AUTH_COOKIES,
        )
        assert upload.status_code == 200
        assert upload.json()["dispositionHeader"] == 'attachment; filename="voice_memo.mp3"'

        download = test_client.get(upload.json()["downloadReference"], headers=AUTH_COOKIES, follow_redirects=False)

        assert download.status_code == 302
        overrides = fake_signer.calls[1][3]
        assert overrides.content_disposition.startswith("inline;")
        assert overrides.content_type == "audio/mpeg"

    def test_reference_cannot_be_replayed_against_another_resource(self, test_client, fake_signer):
        upload = test_client.get(
            "/resource/padA/upload-url",
            params={"name": "report.pdf", "type": "application/pdf"},
            headers=AUTH_COOKIES,
        )
        object_id = parse_qs(urlparse(upload.json()["downloadReference"]).query)["object"][0]

        download = test_client.get(
            "/resource/padB/download",
            params={"object": object_id},
            headers=AUTH_COOKIES,
            follow_redirects=False,
        )

        # Same object id under padB resolves to padB's namespace, never padA's key
        assert download.status_code == 302
        assert fake_signer.calls[1][1] == f"uploads/padB/{object_id}"


class TestAccessControl:
    """Access decisions are taken fresh on every request."""

    def test_revoked_access_blocks_download(self, configured_settings, fake_signer, fake_clock):
        oracle = FakeOracle()
        limiter = SlidingWindowRateLimiter(max_requests=30, window_seconds=60, clock=fake_clock)
        with TestClient(app) as client:
            init_gateway(app, oracle=oracle, signer=fake_signer, rate_limiter=limiter)
            upload = client.get(
                "/resource/padA/upload-url",
                params={"name": "report.pdf", "type": "application/pdf"},
                headers=AUTH_COOKIES,
            )
            oracle.grant = False
            download = client.get(upload.json()["downloadReference"], headers=AUTH_COOKIES, follow_redirects=False)

        assert upload.status_code == 200
        assert download.status_code == 403
        assert len(fake_signer.calls) == 1

    def test_traversal_rejected_before_collaborators(self, test_client, fake_oracle, fake_signer):
        response = test_client.get(
            "/resource/padA/download",
            params={"object": "../../etc/passwd"},
            headers=AUTH_COOKIES,
            follow_redirects=False,
        )

        assert response.status_code == 400
        assert fake_oracle.calls == []
        assert fake_signer.calls == []


class TestRateLimitWindow:
    """The limiter recovers once the window has passed."""

    def test_limit_then_recover(self, configured_settings, fake_oracle, fake_signer, fake_clock):
        limiter = SlidingWindowRateLimiter(max_requests=3, window_seconds=60, clock=fake_clock)
        params = {"name": "report.pdf", "type": "application/pdf"}
        with TestClient(app) as client:
            init_gateway(app, oracle=fake_oracle, signer=fake_signer, rate_limiter=limiter)
            first = [client.get("/resource/padA/upload-url", params=params, headers=AUTH_COOKIES).status_code for _ in range(4)]
            fake_clock.advance(61)
            after = client.get("/resource/padA/upload-url", params=params, headers=AUTH_COOKIES).status_code

        assert first == [200, 200, 200, 429]
        assert after == 200
