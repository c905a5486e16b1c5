"""Integration tests for events, participants and check-ins over HTTP."""

from tests.conftest import bearer, register


def _create_event(client, token, name="Conf"):
    resp = client.post("/api/v1/events", headers=bearer(token), json={"name": name, "location": "Hall A"})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _add_participant(client, token, event_id, email="p@example.com", status="confirmed"):
    resp = client.post(
        f"/api/v1/events/{event_id}/participants",
        headers=bearer(token),
        json={"name": "Pat", "email": email, "status": status},
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


class TestDuplicateCheckIn:
    def test_second_scan_conflicts(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        participant = _add_participant(client, token, event["id"])

        url = f"/api/v1/events/{event['id']}/checkins"
        first = client.post(url, headers=bearer(token), json={"method": "qrcode", "qr_code": participant["qr_code"]})
        assert first.status_code == 200
        assert first.get_json()["data"]["participant_email"] == "p@example.com"

        second = client.post(url, headers=bearer(token), json={"method": "qrcode", "qr_code": participant["qr_code"]})
        assert second.status_code == 409
        assert second.get_json()["error"] == "CONFLICT"

    def test_cancel_allows_re_check_in(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        participant = _add_participant(client, token, event["id"])
        url = f"/api/v1/events/{event['id']}/checkins"

        checkin = client.post(
            url, headers=bearer(token), json={"method": "manual", "participant_id": participant["id"]}
        ).get_json()["data"]
        assert client.delete(f"/api/v1/checkins/{checkin['id']}", headers=bearer(token)).status_code == 204

        status = client.get(f"/api/v1/participants/{participant['id']}/checkin-status", headers=bearer(token))
        assert status.get_json()["data"]["checked_in"] is False

        again = client.post(url, headers=bearer(token), json={"method": "manual", "participant_id": participant["id"]})
        assert again.status_code == 200
        assert again.get_json()["data"]["id"] != checkin["id"]


class TestAuthorization:
    def test_other_organizer_is_forbidden(self, client, organizer):
        event = _create_event(client, organizer["access_token"])
        participant = _add_participant(client, organizer["access_token"], event["id"])
        intruder = register(client, "intruder@example.com")

        resp = client.post(
            f"/api/v1/events/{event['id']}/checkins",
            headers=bearer(intruder["access_token"]),
            json={"method": "qrcode", "qr_code": participant["qr_code"]},
        )
        assert resp.status_code == 403

    def test_staff_cannot_create_events(self, client):
        staff = register(client, "staff@example.com", role="staff")
        resp = client.post("/api/v1/events", headers=bearer(staff["access_token"]), json={"name": "Nope"})
        assert resp.status_code == 403
        assert resp.get_json()["message"] == "insufficient permissions"

    def test_admin_can_manage_any_event(self, client, organizer, admin):
        event = _create_event(client, organizer["access_token"])
        participant = _add_participant(client, organizer["access_token"], event["id"])
        resp = client.post(
            f"/api/v1/events/{event['id']}/checkins",
            headers=bearer(admin["access_token"]),
            json={"method": "qrcode", "qr_code": participant["qr_code"]},
        )
        assert resp.status_code == 200


class TestEventsAndStats:
    def test_event_stats_visible_to_organizer_only(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        participant = _add_participant(client, token, event["id"])
        client.post(
            f"/api/v1/events/{event['id']}/checkins",
            headers=bearer(token),
            json={"method": "qrcode", "qr_code": participant["qr_code"]},
        )

        owner_view = client.get(f"/api/v1/events/{event['id']}", headers=bearer(token)).get_json()
        assert owner_view["stats"]["checked_in_count"] == 1
        assert owner_view["stats"]["checkin_rate"] == 100.0

        anonymous_view = client.get(f"/api/v1/events/{event['id']}").get_json()
        assert "stats" not in anonymous_view
        assert anonymous_view["data"]["name"] == "Conf"

    def test_list_checkins_paginated(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        for i in range(3):
            p = _add_participant(client, token, event["id"], email=f"p{i}@example.com")
            client.post(
                f"/api/v1/events/{event['id']}/checkins",
                headers=bearer(token),
                json={"method": "qrcode", "qr_code": p["qr_code"]},
            )
        resp = client.get(f"/api/v1/events/{event['id']}/checkins?limit=2", headers=bearer(token))
        body = resp.get_json()
        assert len(body["data"]) == 2
        assert body["meta"] == {"page": 1, "limit": 2, "total": 3}

    def test_duplicate_participant_email(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        _add_participant(client, token, event["id"], email="same@example.com")
        resp = client.post(
            f"/api/v1/events/{event['id']}/participants",
            headers=bearer(token),
            json={"name": "Twin", "email": "same@example.com"},
        )
        assert resp.status_code == 409

    def test_unknown_event(self, client, organizer):
        resp = client.get("/api/v1/events/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "NOT_FOUND"
