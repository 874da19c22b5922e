"""
Run event lifecycle through the API: create, join requests, approve/reject,
the event chat, leave, cancel and update.
"""
from datetime import datetime, timedelta, timezone

import pytest

from runmate.models.activity_log import ActivityLog
from runmate.models.chat import Chat
from runmate.models.run_event import RunEvent, RunEventStatus

BASE = "/api/runevents"


def _join(client, headers, run_event, user):
    return client.post(f"{BASE}/{run_event.id}/join", headers=headers(user))


def _decide(client, headers, run_event, host, applicant, action):
    return client.put(
        f"{BASE}/{run_event.id}/requests",
        json={"applicantId": applicant.id, "action": action},
        headers=headers(host),
    )


def _ids(users):
    return [u["id"] for u in users]


@pytest.fixture
def trio(make_user):
    return make_user("Hanna"), make_user("Axel"), make_user("Bea")


class TestCreateAndRead:
    def test_create_puts_host_in_participants(self, client, make_user, headers):
        host = make_user("Hanna")
        when = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
        resp = client.post(
            f"{BASE}/",
            json={
                "title": "Intervals",
                "description": "6x800m",
                "location": {"name": "Stadion", "lat": 59.34, "lng": 18.08},
                "distance": 8,
                "pace": 300,
                "date": when,
                "maxParticipants": 3,
            },
            headers=headers(host),
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["host"]["id"] == host.id
        assert _ids(data["participants"]) == [host.id]
        assert data["pendingRequests"] == []
        assert data["status"] == "open"
        assert data["chatId"] is None
        assert data["location"] == {"name": "Stadion", "lat": 59.34, "lng": 18.08}

    def test_create_rejects_tiny_capacity(self, client, make_user, headers):
        host = make_user()
        resp = client.post(
            f"{BASE}/",
            json={
                "title": "Solo",
                "description": "just me",
                "location": {"name": "Home"},
                "distance": 5,
                "pace": 360,
                "date": "2030-01-01T08:00:00Z",
                "maxParticipants": 1,
            },
            headers=headers(host),
        )
        assert resp.status_code == 422

    def test_list_only_upcoming_open(self, client, make_user, make_event, headers):
        host = make_user()
        soon = make_event(host, days=1, title="Soon")
        later = make_event(host, days=5, title="Later")
        make_event(host, days=-1, title="Past")
        make_event(host, days=2, title="Cancelled", status=RunEventStatus.cancelled)

        resp = client.get(f"{BASE}/", headers=headers(host))
        assert resp.status_code == 200
        assert [e["id"] for e in resp.json()["data"]] == [soon.id, later.id]

    def test_unknown_event_is_404(self, client, make_user, headers):
        resp = client.get(f"{BASE}/4242", headers=headers(make_user()))
        assert resp.status_code == 404


class TestJoinRequests:
    def test_request_lands_in_pending(self, client, make_event, headers, trio):
        host, a, _ = trio
        run_event = make_event(host)
        resp = _join(client, headers, run_event, a)
        assert resp.status_code == 200
        assert _ids(resp.json()["data"]["pendingRequests"]) == [a.id]

    def test_host_cannot_request(self, client, make_event, headers, trio):
        host, _, _ = trio
        resp = _join(client, headers, make_event(host), host)
        assert resp.status_code == 400
        assert resp.json()["code"] == "IS_HOST"

    def test_duplicate_request(self, client, make_event, headers, trio):
        host, a, _ = trio
        run_event = make_event(host)
        _join(client, headers, run_event, a)
        resp = _join(client, headers, run_event, a)
        assert resp.status_code == 400
        assert resp.json()["code"] == "ALREADY_PENDING"

    def test_participant_cannot_request_again(self, client, make_event, headers, trio):
        host, a, _ = trio
        run_event = make_event(host, participants=[a])
        resp = _join(client, headers, run_event, a)
        assert resp.status_code == 400
        assert resp.json()["code"] == "ALREADY_PARTICIPANT"

    @pytest.mark.parametrize("status", [RunEventStatus.full, RunEventStatus.cancelled, RunEventStatus.completed])
    def test_only_open_events_accept_requests(self, client, make_event, headers, trio, status):
        host, a, _ = trio
        run_event = make_event(host, status=status)
        resp = _join(client, headers, run_event, a)
        assert resp.status_code == 400
        assert resp.json()["code"] == "EVENT_NOT_OPEN"

    def test_only_host_decides(self, client, make_event, headers, trio):
        host, a, b = trio
        run_event = make_event(host)
        _join(client, headers, run_event, a)
        resp = _decide(client, headers, run_event, b, a, "approve")
        assert resp.status_code == 403

    def test_deciding_unknown_request_is_404(self, client, make_event, headers, trio):
        host, a, _ = trio
        resp = _decide(client, headers, make_event(host), host, a, "approve")
        assert resp.status_code == 404

    def test_reject_drops_request_without_chat(self, client, db, make_event, headers, trio):
        host, a, _ = trio
        run_event = make_event(host)
        _join(client, headers, run_event, a)
        resp = _decide(client, headers, run_event, host, a, "reject")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["pendingRequests"] == []
        assert _ids(data["participants"]) == [host.id]
        assert data["chatId"] is None
        assert db.query(Chat).count() == 0


class TestCapacityAndChat:
    def test_two_seat_run(self, client, db, make_event, headers, trio):
        host, a, b = trio
        run_event = make_event(host, max_participants=2)
        assert _join(client, headers, run_event, a).status_code == 200
        assert _join(client, headers, run_event, b).status_code == 200

        resp = _decide(client, headers, run_event, host, a, "approve")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert _ids(data["participants"]) == [host.id, a.id]
        assert _ids(data["pendingRequests"]) == [b.id]
        assert data["status"] == "full"
        chat_id = data["chatId"]
        assert chat_id is not None

        chat = client.get(f"/api/chats/{chat_id}", headers=headers(a)).json()["data"]
        assert chat["chatType"] == "group"
        assert chat["name"] == run_event.title
        assert chat["runEventId"] == run_event.id
        assert _ids(chat["participants"]) == [host.id, a.id]
        assert chat["admins"] == [host.id]

        resp = _decide(client, headers, run_event, host, b, "reject")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["pendingRequests"] == []
        assert data["status"] == "full"

        # B never got into the chat
        assert client.get(f"/api/chats/{chat_id}", headers=headers(b)).status_code == 403

    def test_request_after_full_is_rejected(self, client, make_event, headers, trio):
        host, a, b = trio
        run_event = make_event(host, max_participants=2)
        _join(client, headers, run_event, a)
        _decide(client, headers, run_event, host, a, "approve")

        resp = _join(client, headers, run_event, b)
        assert resp.status_code == 400
        assert resp.json()["code"] == "EVENT_NOT_OPEN"

    def test_approve_when_full_keeps_request_pending(self, client, make_event, headers, trio):
        host, a, b = trio
        run_event = make_event(host, max_participants=2)
        _join(client, headers, run_event, a)
        _join(client, headers, run_event, b)
        _decide(client, headers, run_event, host, a, "approve")

        resp = _decide(client, headers, run_event, host, b, "approve")
        assert resp.status_code == 400
        assert resp.json()["code"] == "EVENT_FULL"

        data = client.get(f"{BASE}/{run_event.id}", headers=headers(host)).json()["data"]
        assert _ids(data["pendingRequests"]) == [b.id]
        assert _ids(data["participants"]) == [host.id, a.id]

    def test_second_approval_joins_existing_chat(self, client, db, make_event, headers, trio):
        host, a, b = trio
        run_event = make_event(host, max_participants=3)
        _join(client, headers, run_event, a)
        _join(client, headers, run_event, b)

        first = _decide(client, headers, run_event, host, a, "approve").json()["data"]
        assert first["status"] == "open"
        second = _decide(client, headers, run_event, host, b, "approve").json()["data"]
        assert second["status"] == "full"
        assert second["chatId"] == first["chatId"]

        chat = client.get(f"/api/chats/{second['chatId']}", headers=headers(b)).json()["data"]
        assert _ids(chat["participants"]) == [host.id, a.id, b.id]
        assert db.query(Chat).count() == 1

    def test_approval_is_logged(self, client, db, make_event, headers, trio):
        host, a, _ = trio
        run_event = make_event(host)
        _join(client, headers, run_event, a)
        _decide(client, headers, run_event, host, a, "approve")

        types = [row.type for row in db.query(ActivityLog).order_by(ActivityLog.id)]
        assert types == ["join_requested", "chat_created", "join_approved"]


class TestLeave:
    def test_leaving_reopens_and_leaves_chat(self, client, make_event, headers, trio):
        host, a, _ = trio
        run_event = make_event(host, max_participants=2)
        _join(client, headers, run_event, a)
        chat_id = _decide(client, headers, run_event, host, a, "approve").json()["data"]["chatId"]

        resp = client.post(f"{BASE}/{run_event.id}/leave", headers=headers(a))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "open"
        assert _ids(data["participants"]) == [host.id]

        chat = client.get(f"/api/chats/{chat_id}", headers=headers(host)).json()["data"]
        assert _ids(chat["participants"]) == [host.id]
        assert client.get(f"/api/chats/{chat_id}", headers=headers(a)).status_code == 403

    def test_host_cannot_leave(self, client, make_event, headers, trio):
        host, _, _ = trio
        resp = client.post(f"{BASE}/{make_event(host).id}/leave", headers=headers(host))
        assert resp.status_code == 400
        assert resp.json()["code"] == "HOST_CANNOT_LEAVE"

    def test_outsider_cannot_leave(self, client, make_event, headers, trio):
        host, a, _ = trio
        resp = client.post(f"{BASE}/{make_event(host).id}/leave", headers=headers(a))
        assert resp.status_code == 400
        assert resp.json()["code"] == "NOT_PARTICIPANT"


class TestCancelAndLock:
    def test_cancel_locks_the_event(self, client, make_event, headers, trio):
        host, a, b = trio
        run_event = make_event(host, participants=[a])
        _join(client, headers, run_event, b)

        resp = client.delete(f"{BASE}/{run_event.id}", headers=headers(host))
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "cancelled"

        assert _decide(client, headers, run_event, host, b, "approve").status_code == 409
        assert client.post(f"{BASE}/{run_event.id}/leave", headers=headers(a)).status_code == 409
        assert client.put(f"{BASE}/{run_event.id}", json={"title": "x"}, headers=headers(host)).status_code == 409
        assert client.delete(f"{BASE}/{run_event.id}", headers=headers(host)).status_code == 409

    def test_only_host_cancels(self, client, db, make_event, headers, trio):
        host, a, _ = trio
        run_event = make_event(host, participants=[a])
        resp = client.delete(f"{BASE}/{run_event.id}", headers=headers(a))
        assert resp.status_code == 403
        assert db.get(RunEvent, run_event.id).status == RunEventStatus.open


class TestUpdate:
    def test_capacity_below_participants(self, client, make_event, headers, trio):
        host, a, b = trio
        run_event = make_event(host, participants=[a, b], max_participants=4)
        resp = client.put(f"{BASE}/{run_event.id}", json={"maxParticipants": 2}, headers=headers(host))
        assert resp.status_code == 400
        assert resp.json()["code"] == "CAPACITY_BELOW_PARTICIPANTS"

    def test_capacity_change_recomputes_status(self, client, make_event, headers, trio):
        host, a, b = trio
        run_event = make_event(host, participants=[a, b], max_participants=4)

        data = client.put(f"{BASE}/{run_event.id}", json={"maxParticipants": 3}, headers=headers(host)).json()["data"]
        assert data["status"] == "full"
        data = client.put(f"{BASE}/{run_event.id}", json={"maxParticipants": 5}, headers=headers(host)).json()["data"]
        assert data["status"] == "open"

    def test_partial_update_logs_diff(self, client, db, make_event, headers, trio):
        host, _, _ = trio
        run_event = make_event(host, title="Old title")
        resp = client.put(
            f"{BASE}/{run_event.id}",
            json={"title": "New title", "location": {"name": "Hagaparken"}},
            headers=headers(host),
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["title"] == "New title"
        assert data["location"]["name"] == "Hagaparken"
        assert data["distance"] == 10.0

        entry = db.query(ActivityLog).filter(ActivityLog.type == "run_event_updated").one()
        assert "title" in entry.data["changed"]
        assert entry.data["diff"]["title"] == {"old": "Old title", "new": "New title"}

    def test_non_host_cannot_update(self, client, make_event, headers, trio):
        host, a, _ = trio
        run_event = make_event(host, participants=[a])
        resp = client.put(f"{BASE}/{run_event.id}", json={"title": "Mine now"}, headers=headers(a))
        assert resp.status_code == 403
