"""
Chat endpoints: direct/group creation, messages, read receipts, deletion
and the pushes that go out with them.
"""
import pytest

BASE = "/api/chats"


@pytest.fixture
def pair(make_user):
    return make_user("Alva"), make_user("Ben")


def _direct(client, headers, me, other):
    return client.post(f"{BASE}/direct/{other.id}", headers=headers(me))


def _send(client, headers, chat_id, user, content, **extra):
    return client.post(f"{BASE}/{chat_id}/messages", json={"content": content, **extra}, headers=headers(user))


class TestDirectChats:
    def test_same_chat_both_ways(self, client, headers, pair):
        a, b = pair
        first = _direct(client, headers, a, b)
        assert first.status_code == 200
        chat = first.json()["data"]
        assert chat["chatType"] == "direct"
        assert sorted(p["id"] for p in chat["participants"]) == sorted([a.id, b.id])
        assert chat["displayName"] == "Direktchatt"

        again = _direct(client, headers, a, b).json()["data"]
        reverse = _direct(client, headers, b, a).json()["data"]
        assert again["id"] == chat["id"] == reverse["id"]

    def test_chat_with_yourself(self, client, headers, pair):
        a, _ = pair
        resp = _direct(client, headers, a, a)
        assert resp.status_code == 400
        assert resp.json()["code"] == "SELF_CHAT"

    def test_chat_with_unknown_user(self, client, make_user, headers):
        resp = client.post(f"{BASE}/direct/777", headers=headers(make_user()))
        assert resp.status_code == 404

    def test_create_with_initial_message(self, client, headers, push, pair):
        a, b = pair
        resp = client.post(
            f"{BASE}/create",
            json={"participantId": b.id, "initialMessage": "Run on Sunday?"},
            headers=headers(a),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["chatId"] == body["data"]["id"]
        assert body["data"]["lastMessage"]["content"] == "Run on Sunday?"
        assert body["data"]["unreadCount"] == 0

        pushed = push.events_for(b.id, "new_message")
        assert len(pushed) == 1
        assert pushed[0]["message"]["content"] == "Run on Sunday?"
        assert push.events_for(a.id) == []

    def test_create_needs_initial_message(self, client, headers, pair):
        a, b = pair
        resp = client.post(f"{BASE}/create", json={"participantId": b.id, "initialMessage": "  "}, headers=headers(a))
        assert resp.status_code == 400


class TestGroupChats:
    def test_creator_is_the_only_admin(self, client, make_user, headers, pair):
        a, b = pair
        c = make_user("Cleo")
        resp = client.post(
            f"{BASE}/group",
            json={"participantIds": [b.id, c.id, b.id, a.id], "name": "Long run crew"},
            headers=headers(a),
        )
        assert resp.status_code == 200
        chat = resp.json()["data"]
        assert [p["id"] for p in chat["participants"]] == [a.id, b.id, c.id]
        assert chat["admins"] == [a.id]
        assert chat["displayName"] == "Long run crew"

    def test_unnamed_group_display_name(self, client, make_user, headers, pair):
        a, b = pair
        chat = client.post(f"{BASE}/group", json={"participantIds": [b.id]}, headers=headers(a)).json()["data"]
        assert chat["displayName"] == "Grupp (2 deltagare)"

    def test_group_needs_someone_else(self, client, headers, pair):
        a, _ = pair
        resp = client.post(f"{BASE}/group", json={"participantIds": [a.id]}, headers=headers(a))
        assert resp.status_code == 400


class TestMessages:
    def test_send_pushes_to_others_only(self, client, headers, push, pair):
        a, b = pair
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]

        resp = _send(client, headers, chat_id, a, "  Hej!  ")
        assert resp.status_code == 200
        body = resp.json()
        message = body["data"]
        assert message["content"] == "Hej!"
        assert message["sender"]["id"] == a.id
        assert [r["userId"] for r in message["readBy"]] == [a.id]
        assert body["chat"]["lastMessage"]["content"] == "Hej!"

        assert [p["message"]["id"] for p in push.events_for(b.id, "new_message")] == [message["id"]]
        assert push.events_for(a.id) == []

    @pytest.mark.parametrize("content", ["", "   ", "x" * 1001])
    def test_invalid_content(self, client, headers, pair, content):
        a, b = pair
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]
        resp = _send(client, headers, chat_id, a, content)
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_MESSAGE"

    def test_outsider_cannot_read_or_send(self, client, make_user, headers, pair):
        a, b = pair
        outsider = make_user("Eve")
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]
        assert _send(client, headers, chat_id, outsider, "hi").status_code == 403
        assert client.get(f"{BASE}/{chat_id}/messages", headers=headers(outsider)).status_code == 403

    def test_reply_to_must_exist_in_chat(self, client, headers, pair):
        a, b = pair
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]
        original = _send(client, headers, chat_id, a, "first").json()["data"]

        ok_reply = _send(client, headers, chat_id, b, "answer", replyTo=original["id"])
        assert ok_reply.json()["data"]["replyTo"] == original["id"]
        assert _send(client, headers, chat_id, b, "answer", replyTo=9999).status_code == 404

    def test_history_pages_walk_back_in_time(self, client, headers, pair):
        a, b = pair
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]
        for i in range(5):
            _send(client, headers, chat_id, a, f"m{i}")

        page1 = client.get(f"{BASE}/{chat_id}/messages?page=1&limit=2", headers=headers(b)).json()
        assert [m["content"] for m in page1["data"]] == ["m3", "m4"]
        assert page1["pagination"] == {"page": 1, "hasMore": True, "totalMessages": 5}

        page3 = client.get(f"{BASE}/{chat_id}/messages?page=3&limit=2", headers=headers(b)).json()
        assert [m["content"] for m in page3["data"]] == ["m0"]
        assert page3["pagination"]["hasMore"] is False

        page4 = client.get(f"{BASE}/{chat_id}/messages?page=4&limit=2", headers=headers(b)).json()
        assert page4["data"] == []


class TestReadReceipts:
    def test_mark_all_read(self, client, headers, push, pair):
        a, b = pair
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]
        _send(client, headers, chat_id, a, "one")
        _send(client, headers, chat_id, a, "two")

        assert client.get(f"{BASE}/{chat_id}", headers=headers(b)).json()["data"]["unreadCount"] == 2
        assert client.get(f"{BASE}/{chat_id}", headers=headers(a)).json()["data"]["unreadCount"] == 0

        resp = client.put(f"{BASE}/{chat_id}/read", headers=headers(b))
        assert resp.status_code == 200
        assert resp.json()["data"] == {"markedCount": 2}
        assert client.get(f"{BASE}/{chat_id}", headers=headers(b)).json()["data"]["unreadCount"] == 0

        read_events = push.events_for(a.id, "message_read")
        assert read_events == [{"chatId": chat_id, "userId": b.id, "messageIds": "all"}]

        # second call changes nothing and pushes nothing
        again = client.put(f"{BASE}/{chat_id}/read", headers=headers(b))
        assert again.json()["data"] == {"markedCount": 0}
        assert len(push.events_for(a.id, "message_read")) == 1

    def test_mark_selected_ids(self, client, headers, pair):
        a, b = pair
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]
        first = _send(client, headers, chat_id, a, "one").json()["data"]
        _send(client, headers, chat_id, a, "two")

        resp = client.put(f"{BASE}/{chat_id}/read", json={"messageId": first["id"]}, headers=headers(b))
        assert resp.json()["data"] == {"markedCount": 1}
        assert client.get(f"{BASE}/{chat_id}", headers=headers(b)).json()["data"]["unreadCount"] == 1


class TestDelete:
    def test_only_sender_deletes(self, client, headers, push, pair):
        a, b = pair
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]
        keep = _send(client, headers, chat_id, a, "keep").json()["data"]
        gone = _send(client, headers, chat_id, a, "oops").json()["data"]

        resp = client.delete(f"{BASE}/{chat_id}/messages/{gone['id']}", headers=headers(b))
        assert resp.status_code == 403
        assert resp.json()["code"] == "NOT_SENDER"

        resp = client.delete(f"{BASE}/{chat_id}/messages/{gone['id']}", headers=headers(a))
        assert resp.status_code == 200
        assert push.events_for(b.id, "message_deleted") == [{"chatId": chat_id, "messageId": gone["id"]}]

        history = client.get(f"{BASE}/{chat_id}/messages", headers=headers(b)).json()
        assert [m["id"] for m in history["data"]] == [keep["id"]]
        assert history["pagination"]["totalMessages"] == 1
        assert client.get(f"{BASE}/{chat_id}", headers=headers(b)).json()["data"]["unreadCount"] == 1

    def test_deleting_twice_is_404(self, client, headers, pair):
        a, b = pair
        chat_id = _direct(client, headers, a, b).json()["data"]["id"]
        msg = _send(client, headers, chat_id, a, "bye").json()["data"]
        client.delete(f"{BASE}/{chat_id}/messages/{msg['id']}", headers=headers(a))
        assert client.delete(f"{BASE}/{chat_id}/messages/{msg['id']}", headers=headers(a)).status_code == 404


class TestListing:
    def test_list_with_unread_counts(self, client, make_user, headers, pair):
        a, b = pair
        c = make_user("Cleo")
        with_b = _direct(client, headers, a, b).json()["data"]["id"]
        with_c = _direct(client, headers, a, c).json()["data"]["id"]
        _send(client, headers, with_b, b, "newest")

        resp = client.get(f"{BASE}/", headers=headers(a))
        assert resp.status_code == 200
        body = resp.json()
        assert [chat["id"] for chat in body["data"]] == [with_b, with_c]
        assert [chat["unreadCount"] for chat in body["data"]] == [1, 0]
        assert body["page"] == 1
        assert body["hasMore"] is False

        assert [chat["id"] for chat in client.get(f"{BASE}/", headers=headers(c)).json()["data"]] == [with_c]

    def test_has_more_on_an_exact_last_page(self, client, make_user, headers, pair):
        a, b = pair
        _direct(client, headers, a, b)
        _direct(client, headers, a, make_user("Cleo"))

        body = client.get(f"{BASE}/?limit=2", headers=headers(a)).json()
        assert len(body["data"]) == 2
        assert body["hasMore"] is False

        _direct(client, headers, a, make_user("Dag"))
        first = client.get(f"{BASE}/?limit=2", headers=headers(a)).json()
        assert first["hasMore"] is True
        last = client.get(f"{BASE}/?limit=2&page=2", headers=headers(a)).json()
        assert len(last["data"]) == 1
        assert last["hasMore"] is False


class TestBlockedUsers:
    def test_block_prevents_direct_chat_both_ways(self, client, headers, pair):
        a, b = pair
        client.post(f"/api/users/block/{b.id}", headers=headers(a))

        for me, other in ((a, b), (b, a)):
            resp = client.post(f"{BASE}/direct/{other.id}", headers=headers(me))
            assert resp.status_code == 403
            assert resp.json()["code"] == "USER_BLOCKED"

        client.delete(f"/api/users/block/{b.id}", headers=headers(a))
        assert client.post(f"{BASE}/direct/{a.id}", headers=headers(b)).status_code == 200
