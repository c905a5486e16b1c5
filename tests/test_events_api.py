"""HTTP tests for event and participant management."""

import io

from tests.conftest import bearer, register


def _create_event(client, token, name="Conf"):
    resp = client.post("/api/v1/events", headers=bearer(token), json={"name": name})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _add_participant(client, token, event_id, email, status="confirmed"):
    resp = client.post(
        f"/api/v1/events/{event_id}/participants",
        headers=bearer(token),
        json={"name": "Pat", "email": email, "status": status},
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


class TestEvents:
    def test_list_own_events_paginated(self, client, organizer):
        token = organizer["access_token"]
        for i in range(3):
            _create_event(client, token, name=f"Conf {i}")
        other = register(client, "other@example.com")
        _create_event(client, other["access_token"], name="Not mine")

        resp = client.get("/api/v1/events?limit=2", headers=bearer(token))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["meta"] == {"page": 1, "limit": 2, "total": 3}
        assert all(e["organizer_id"] == organizer["user"]["id"] for e in body["data"])

    def test_admin_lists_all_and_filters(self, client, organizer, admin):
        _create_event(client, organizer["access_token"], name="Python Meetup")
        _create_event(client, organizer["access_token"], name="Rust Meetup")

        resp = client.get("/api/v1/events", headers=bearer(admin["access_token"]))
        assert resp.get_json()["meta"]["total"] == 2
        resp = client.get("/api/v1/events?search=python", headers=bearer(admin["access_token"]))
        assert [e["name"] for e in resp.get_json()["data"]] == ["Python Meetup"]

    def test_staff_cannot_list(self, client):
        staff = register(client, "staff@example.com", role="staff")
        assert client.get("/api/v1/events", headers=bearer(staff["access_token"])).status_code == 403

    def test_update_event(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        resp = client.put(
            f"/api/v1/events/{event['id']}",
            headers=bearer(token),
            json={"location": "Main Hall", "starts_at": "2030-01-01T09:00:00Z"},
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["location"] == "Main Hall"
        assert data["name"] == "Conf"

        resp = client.put(
            f"/api/v1/events/{event['id']}", headers=bearer(token), json={"ends_at": "2029-12-31T09:00:00Z"}
        )
        assert resp.status_code == 400
        assert "ends_at" in resp.get_json()["details"]

    def test_update_by_other_organizer_forbidden(self, client, organizer):
        event = _create_event(client, organizer["access_token"])
        other = register(client, "other@example.com")
        resp = client.put(f"/api/v1/events/{event['id']}", headers=bearer(other["access_token"]), json={"name": "X"})
        assert resp.status_code == 403
        assert resp.get_json()["message"] == "you do not have permission to update this event"

    def test_delete_event_removes_participants(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        participant = _add_participant(client, token, event["id"], "p@example.com")

        assert client.delete(f"/api/v1/events/{event['id']}", headers=bearer(token)).status_code == 204
        assert client.get(f"/api/v1/events/{event['id']}").status_code == 404
        assert client.get(f"/api/v1/participants/{participant['id']}", headers=bearer(token)).status_code == 404

    def test_delete_unknown_event(self, client, organizer):
        resp = client.delete("/api/v1/events/nope", headers=bearer(organizer["access_token"]))
        assert resp.status_code == 404


class TestParticipants:
    def test_list_with_filters(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        _add_participant(client, token, event["id"], "a@example.com", status="confirmed")
        _add_participant(client, token, event["id"], "b@example.com", status="tentative")

        url = f"/api/v1/events/{event['id']}/participants"
        body = client.get(url, headers=bearer(token)).get_json()
        assert body["meta"]["total"] == 2

        body = client.get(f"{url}?status=tentative", headers=bearer(token)).get_json()
        assert [p["email"] for p in body["data"]] == ["b@example.com"]

        body = client.get(f"{url}?search=A@EXAMPLE", headers=bearer(token)).get_json()
        assert [p["email"] for p in body["data"]] == ["a@example.com"]

    def test_list_rejects_unknown_status(self, client, organizer):
        event = _create_event(client, organizer["access_token"])
        resp = client.get(
            f"/api/v1/events/{event['id']}/participants?status=maybe", headers=bearer(organizer["access_token"])
        )
        assert resp.status_code == 400
        assert "status" in resp.get_json()["details"]

    def test_list_forbidden_for_other_organizer(self, client, organizer):
        event = _create_event(client, organizer["access_token"])
        other = register(client, "other@example.com")
        resp = client.get(f"/api/v1/events/{event['id']}/participants", headers=bearer(other["access_token"]))
        assert resp.status_code == 403

    def test_update_participant(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        participant = _add_participant(client, token, event["id"], "a@example.com")
        _add_participant(client, token, event["id"], "b@example.com")

        resp = client.put(
            f"/api/v1/participants/{participant['id']}",
            headers=bearer(token),
            json={"status": "declined", "email": " New@Example.com "},
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["status"] == "declined"
        assert data["email"] == "new@example.com"
        assert data["qr_code"] == participant["qr_code"]

        resp = client.put(
            f"/api/v1/participants/{participant['id']}", headers=bearer(token), json={"email": "b@example.com"}
        )
        assert resp.status_code == 409

        resp = client.put(f"/api/v1/participants/{participant['id']}", headers=bearer(token), json={"status": "x"})
        assert resp.status_code == 400

    def test_declined_participant_cannot_check_in(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        participant = _add_participant(client, token, event["id"], "a@example.com")
        client.put(f"/api/v1/participants/{participant['id']}", headers=bearer(token), json={"status": "declined"})

        resp = client.post(
            f"/api/v1/events/{event['id']}/checkins",
            headers=bearer(token),
            json={"method": "qrcode", "qr_code": participant["qr_code"]},
        )
        assert resp.status_code == 400

    def test_delete_participant(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        participant = _add_participant(client, token, event["id"], "a@example.com")
        client.post(
            f"/api/v1/events/{event['id']}/checkins",
            headers=bearer(token),
            json={"method": "qrcode", "qr_code": participant["qr_code"]},
        )

        other = register(client, "other@example.com")
        resp = client.delete(f"/api/v1/participants/{participant['id']}", headers=bearer(other["access_token"]))
        assert resp.status_code == 403

        assert client.delete(f"/api/v1/participants/{participant['id']}", headers=bearer(token)).status_code == 204
        assert client.get(f"/api/v1/participants/{participant['id']}", headers=bearer(token)).status_code == 404
        stats = client.get(f"/api/v1/events/{event['id']}/checkins/stats", headers=bearer(token)).get_json()["data"]
        assert stats["checked_in_count"] == 0
        assert stats["total_participants"] == 0


class TestBulkImport:
    def test_json_rows(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        resp = client.post(
            f"/api/v1/events/{event['id']}/participants/bulk",
            headers=bearer(token),
            json={
                "participants": [
                    {"name": "Ann", "email": "ann@example.com"},
                    {"name": "", "email": "blank@example.com"},
                ]
            },
        )
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["created_count"] == 1
        assert data["failed_count"] == 1
        assert data["participants"][0]["qr_code"]
        assert data["errors"][0]["index"] == 1
        assert data["errors"][0]["email"] == "blank@example.com"

    def test_csv_upload(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        csv_body = "Name,Email,Status,Notes\nAnn,ann@example.com,confirmed,vip\nBob,bob@example.com,,\n"
        resp = client.post(
            f"/api/v1/events/{event['id']}/participants/bulk",
            headers=bearer(token),
            data={"file": (io.BytesIO(csv_body.encode("utf-8")), "guests.csv")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201, resp.get_json()
        data = resp.get_json()["data"]
        assert data["created_count"] == 2
        statuses = {p["email"]: p["status"] for p in data["participants"]}
        assert statuses == {"ann@example.com": "confirmed", "bob@example.com": "tentative"}

    def test_raw_csv_body(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        resp = client.post(
            f"/api/v1/events/{event['id']}/participants/bulk",
            headers=bearer(token),
            data="name,email\nAnn,ann@example.com\n",
            content_type="text/csv",
        )
        assert resp.status_code == 201
        assert resp.get_json()["data"]["created_count"] == 1

    def test_csv_without_required_columns(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        resp = client.post(
            f"/api/v1/events/{event['id']}/participants/bulk",
            headers=bearer(token),
            data="full_name,mail\nAnn,ann@example.com\n",
            content_type="text/csv",
        )
        assert resp.status_code == 400
        assert "file" in resp.get_json()["details"]

    def test_nothing_created_reports_errors(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        resp = client.post(
            f"/api/v1/events/{event['id']}/participants/bulk",
            headers=bearer(token),
            json=[{"name": "Ann", "email": "nope"}],
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["created_count"] == 0

    def test_body_must_be_a_list(self, client, organizer):
        token = organizer["access_token"]
        event = _create_event(client, token)
        resp = client.post(
            f"/api/v1/events/{event['id']}/participants/bulk", headers=bearer(token), json={"participants": "x"}
        )
        assert resp.status_code == 400
