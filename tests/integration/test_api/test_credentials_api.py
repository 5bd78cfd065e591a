"""Integration tests for the credentials API."""
import pytest

from gatepass.core.config import settings
from gatepass.core.credentials import CredentialCodec
from gatepass.api.deps import get_codec
from gatepass.main import app
from tests.utils import TEST_SECRET

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def tiny_codec_client(client):
    """Client whose codec cannot fit any payload into a QR code."""
    app.dependency_overrides[get_codec] = lambda: CredentialCodec(TEST_SECRET, max_version=1)
    return client


@pytest.mark.integration
class TestIssueCredential:
    """Test credential issuance."""

    def test_issue(self, client, admin_headers, attendee):
        response = client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["attendee_id"] == attendee.id
        assert data["registration_code"] == attendee.registration_code
        assert data["created"] is True
        assert data["is_placeholder"] is False
        assert data["consumed"] is False
        assert data["image_url"] == f"/api/v1/credentials/{data['credential_id']}/image"

    def test_issue_is_idempotent(self, client, admin_headers, attendee):
        first = client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers).json()
        second = client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers).json()

        assert second["created"] is False
        assert second["credential_id"] == first["credential_id"]

    def test_issue_unknown_attendee(self, client, admin_headers):
        response = client.post("/api/v1/attendees/99999/credential", headers=admin_headers)

        assert response.status_code == 404

    def test_issue_requires_admin(self, client, staff_headers, attendee):
        response = client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=staff_headers)

        assert response.status_code == 403

    def test_issue_requires_token(self, client, attendee):
        response = client.post(f"/api/v1/attendees/{attendee.id}/credential")

        assert response.status_code == 401

    def test_generation_failure_stores_placeholder(self, tiny_codec_client, admin_headers, attendee):
        response = tiny_codec_client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["generation_failed"] is True
        assert response.json()["is_placeholder"] is True

    def test_generation_failure_without_placeholder(self, tiny_codec_client, admin_headers, attendee, monkeypatch):
        monkeypatch.setattr(settings, "CREDENTIAL_PLACEHOLDER_ON_FAILURE", False)

        response = tiny_codec_client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers)

        assert response.status_code == 500
        assert response.json()["detail"]["code"] == "CREDENTIAL_GENERATION_FAILED"


@pytest.mark.integration
class TestRegenerateCredential:
    """Test credential reissue."""

    def test_regenerate_rotates_code(self, client, admin_headers, attendee, db_session, store):
        old = client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers).json()
        old_image_path = store.get_by_attendee(db_session, attendee.id).image_path

        response = client.post(f"/api/v1/attendees/{attendee.id}/credential/regenerate", headers=admin_headers)

        assert response.status_code == 200
        new = response.json()
        assert new["registration_code"] != old["registration_code"]
        assert new["created"] is True
        assert not store.storage.exists(old_image_path)
        image = client.get(new["image_url"])
        assert image.status_code == 200
        assert new["registration_code"] in image.headers["content-disposition"]

    def test_old_payload_unknown_after_regenerate(self, client, admin_headers, staff_headers, attendee, db_session, store):
        client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers)
        old_payload = store.get_by_attendee(db_session, attendee.id).payload

        client.post(f"/api/v1/attendees/{attendee.id}/credential/regenerate", headers=admin_headers)
        response = client.post("/api/v1/scans", json={"qr_data": old_payload}, headers=staff_headers)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "UNKNOWN_ATTENDEE"

    def test_regenerate_keeping_code(self, client, admin_headers, staff_headers, attendee, db_session, store):
        client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers)
        old_payload = store.get_by_attendee(db_session, attendee.id).payload

        response = client.post(
            f"/api/v1/attendees/{attendee.id}/credential/regenerate",
            json={"rotate_registration_code": False},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["registration_code"] == attendee.registration_code
        rejected = client.post("/api/v1/scans", json={"qr_data": old_payload}, headers=staff_headers)
        assert rejected.status_code == 422
        assert rejected.json()["detail"]["code"] == "TAMPERED"

        new_payload = store.get_by_attendee(db_session, attendee.id).payload
        accepted = client.post("/api/v1/scans", json={"qr_data": new_payload}, headers=staff_headers)
        assert accepted.json()["outcome"] == "CHECKED_IN"

    def test_regenerate_requires_admin(self, client, staff_headers, attendee):
        response = client.post(f"/api/v1/attendees/{attendee.id}/credential/regenerate", headers=staff_headers)

        assert response.status_code == 403


@pytest.mark.integration
class TestGetCredential:
    """Test credential lookup."""

    def test_without_credential(self, client, staff_headers, attendee):
        response = client.get(f"/api/v1/attendees/{attendee.id}/credential", headers=staff_headers)

        assert response.status_code == 200
        assert response.json()["credential"] is None
        assert response.json()["presence"]["state"] == "NOT_PRESENT"

    def test_after_scan(self, client, admin_headers, staff_headers, attendee, db_session, store):
        client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers)
        payload = store.get_by_attendee(db_session, attendee.id).payload
        client.post("/api/v1/scans", json={"qr_data": payload}, headers=staff_headers)

        data = client.get(f"/api/v1/attendees/{attendee.id}/credential", headers=staff_headers).json()

        assert data["credential"]["consumed"] is True
        assert data["credential"]["consumed_at"] is not None
        assert data["presence"]["state"] == "PRESENT"

    def test_unknown_attendee(self, client, staff_headers):
        response = client.get("/api/v1/attendees/99999/credential", headers=staff_headers)

        assert response.status_code == 404

    def test_requires_token(self, client, attendee):
        response = client.get(f"/api/v1/attendees/{attendee.id}/credential")

        assert response.status_code == 401


@pytest.mark.integration
class TestDownloadImage:
    """Test the credential image download."""

    def test_download_png(self, client, admin_headers, attendee):
        issued = client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers).json()

        response = client.get(issued["image_url"])

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(PNG_MAGIC)
        assert (
            response.headers["content-disposition"]
            == f'attachment; filename="{attendee.registration_code}-qr-code.png"'
        )

    def test_download_placeholder(self, tiny_codec_client, admin_headers, attendee):
        issued = tiny_codec_client.post(f"/api/v1/attendees/{attendee.id}/credential", headers=admin_headers).json()

        response = tiny_codec_client.get(issued["image_url"])

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert attendee.registration_code in response.text

    def test_download_missing(self, client):
        response = client.get("/api/v1/credentials/99999/image")

        assert response.status_code == 404


@pytest.mark.integration
class TestHealth:
    """Test the health endpoint and response headers."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"]["status"] == "connected"

    def test_response_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-API-Version"] == settings.APP_VERSION
        assert "X-Request-ID" in response.headers
