"""Integration tests for manual check-in by attendee id."""
import pytest

from gatepass.services import issue_credential


@pytest.mark.integration
class TestManualCheckin:
    """Staff check an attendee in without scanning a badge."""

    def test_three_check_ins(self, client, staff_headers, attendee):
        url = f"/api/v1/attendees/{attendee.id}/checkin"
        responses = [client.post(url, headers=staff_headers) for _ in range(3)]

        assert [r.status_code for r in responses] == [200, 200, 200]
        assert [r.json()["outcome"] for r in responses] == [
            "CHECKED_IN",
            "CHECKED_OUT",
            "ALREADY_CHECKED_OUT",
        ]
        first, second, third = (r.json() for r in responses)
        assert first["message"] == "Check-in successful"
        assert first["attendee"]["id"] == attendee.id
        assert first["presence"]["state"] == "PRESENT"
        assert first["presence"]["checked_in_by"] == "staff-7"
        assert second["presence"]["state"] == "DEPARTED"
        assert second["presence"]["checked_out_by"] == "staff-7"
        assert third["presence"] == second["presence"]

    def test_without_credential(self, client, staff_headers, attendee):
        response = client.post(f"/api/v1/attendees/{attendee.id}/checkin", headers=staff_headers)

        assert response.status_code == 200
        assert response.json()["credential_consumed"] is False

    def test_consumes_issued_credential(self, client, staff_headers, db_session, attendee, codec, store):
        issued = issue_credential(db_session, attendee, codec, store).credential

        response = client.post(f"/api/v1/attendees/{attendee.id}/checkin", headers=staff_headers)
        assert response.json()["credential_consumed"] is True

        # a later badge scan continues from the manual check-in
        response = client.post("/api/v1/scans", json={"qr_data": issued.payload}, headers=staff_headers)
        assert response.json()["outcome"] == "CHECKED_OUT"

    def test_unknown_attendee(self, client, staff_headers):
        response = client.post("/api/v1/attendees/99999/checkin", headers=staff_headers)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "UNKNOWN_ATTENDEE"

    def test_no_token(self, client, attendee):
        response = client.post(f"/api/v1/attendees/{attendee.id}/checkin")

        assert response.status_code == 401

    def test_wrong_role(self, client, attendee):
        from gatepass.core.security import create_access_token

        token = create_access_token({"sub": "visitor", "role": "attendee"})
        response = client.post(
            f"/api/v1/attendees/{attendee.id}/checkin",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 403
