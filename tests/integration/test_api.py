"""
Integration tests for the HTTP API.

Drives a whole meeting through the REST endpoints: create a session,
join, write topics, vote on them, discuss and decide.
"""

from uuid import uuid4

import pytest

API = "/api/v1"


async def _create_session(client, name: str = "Team retro") -> dict:
    response = await client.post(f"{API}/sessions", json={"name": name})
    assert response.status_code == 201
    return response.json()


async def _join(client, session_id: str, username: str) -> dict:
    response = await client.post(f"{API}/sessions/{session_id}/join", json={"username": username})
    assert response.status_code == 200
    return response.json()["user"]


async def _ticket(client, session_id: str, user_id: str, description: str, space: str | None = None) -> dict:
    response = await client.post(
        f"{API}/tickets",
        json={"session_id": session_id, "user_id": user_id, "description": description},
    )
    assert response.status_code == 201
    ticket = response.json()
    if space is not None:
        moved = await client.post(
            f"{API}/tickets/{ticket['id']}/move", json={"space": space, "user_id": user_id}
        )
        assert moved.status_code == 200
        ticket = moved.json()
    return ticket


@pytest.mark.integration
class TestHealth:
    """Tests for service metadata endpoints."""

    async def test_health(self, api_client) -> None:
        response = await api_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "lean-coffee-server"

    async def test_root(self, api_client) -> None:
        response = await api_client.get("/")
        assert response.status_code == 200


@pytest.mark.integration
class TestSessionEndpoints:
    """Tests for the session directory endpoints."""

    async def test_create_and_lookup_by_code(self, api_client) -> None:
        session = await _create_session(api_client)
        await _join(api_client, session["id"], "alice")

        response = await api_client.get(f"{API}/sessions/code/{session['short_code']}")

        assert response.status_code == 200
        details = response.json()
        assert details["session"]["id"] == session["id"]
        assert [u["username"] for u in details["users"]] == ["alice"]

    async def test_unknown_code_is_404(self, api_client) -> None:
        response = await api_client.get(f"{API}/sessions/code/zzz-zzz-zzz")
        assert response.status_code == 404

    async def test_join_twice_is_not_new(self, api_client) -> None:
        session = await _create_session(api_client)
        await _join(api_client, session["id"], "alice")

        again = await api_client.post(
            f"{API}/sessions/{session['id']}/join", json={"username": "alice"}
        )

        assert again.json()["is_new"] is False

    async def test_username_availability_and_members(self, api_client, clock) -> None:
        session = await _create_session(api_client)
        await _join(api_client, session["id"], "alice")

        taken = await api_client.get(
            f"{API}/sessions/{session['id']}/username-available", params={"username": "alice"}
        )
        assert taken.json() == {"username": "alice", "available": False}

        clock.advance(seconds=31)
        members = (await api_client.get(f"{API}/sessions/{session['id']}/members")).json()
        assert members[0]["user"]["username"] == "alice"
        assert members[0]["is_online"] is False

    async def test_blank_session_name_is_422(self, api_client) -> None:
        response = await api_client.post(f"{API}/sessions", json={"name": ""})
        assert response.status_code == 422


@pytest.mark.integration
class TestTicketEndpoints:
    """Tests for ticket endpoints and their error statuses."""

    async def test_personal_ticket_visibility(self, api_client) -> None:
        session = await _create_session(api_client)
        alice = await _join(api_client, session["id"], "alice")
        bob = await _join(api_client, session["id"], "bob")
        await _ticket(api_client, session["id"], alice["id"], "Private draft")

        seen_by_bob = await api_client.get(
            f"{API}/tickets", params={"session_id": session["id"], "user_id": bob["id"]}
        )

        assert seen_by_bob.status_code == 200
        assert seen_by_bob.json() == []

    async def test_move_other_users_personal_ticket_is_403(self, api_client) -> None:
        session = await _create_session(api_client)
        alice = await _join(api_client, session["id"], "alice")
        bob = await _join(api_client, session["id"], "bob")
        ticket = await _ticket(api_client, session["id"], alice["id"], "Private draft")

        response = await api_client.post(
            f"{API}/tickets/{ticket['id']}/move", json={"space": "TODO", "user_id": bob["id"]}
        )

        assert response.status_code == 403

    async def test_second_doing_is_409(self, api_client) -> None:
        session = await _create_session(api_client)
        alice = await _join(api_client, session["id"], "alice")
        await _ticket(api_client, session["id"], alice["id"], "First", "DOING")
        second = await _ticket(api_client, session["id"], alice["id"], "Second", "TODO")

        response = await api_client.post(
            f"{API}/tickets/{second['id']}/move", json={"space": "DOING", "user_id": alice["id"]}
        )

        assert response.status_code == 409

    async def test_edit_and_delete(self, api_client) -> None:
        session = await _create_session(api_client)
        alice = await _join(api_client, session["id"], "alice")
        ticket = await _ticket(api_client, session["id"], alice["id"], "Draft")

        edited = await api_client.patch(
            f"{API}/tickets/{ticket['id']}", json={"user_id": alice["id"], "description": "Final"}
        )
        assert edited.json()["description"] == "Final"

        deleted = await api_client.delete(
            f"{API}/tickets/{ticket['id']}", params={"user_id": alice["id"]}
        )
        assert deleted.status_code == 204

        missing = await api_client.get(f"{API}/tickets/{ticket['id']}")
        assert missing.status_code == 404

    async def test_timer_endpoints(self, api_client, clock) -> None:
        session = await _create_session(api_client)
        alice = await _join(api_client, session["id"], "alice")
        ticket = await _ticket(api_client, session["id"], alice["id"], "Topic", "DOING")

        await api_client.post(f"{API}/tickets/{ticket['id']}/timer/start")
        clock.advance(seconds=90)
        paused = await api_client.post(f"{API}/tickets/{ticket['id']}/timer/pause")

        assert paused.status_code == 200
        assert paused.json()["total_discussion_ms"] == 90_000

        again = await api_client.post(f"{API}/tickets/{ticket['id']}/timer/pause")
        assert again.status_code == 409


@pytest.mark.integration
class TestMeetingFlow:
    """End-to-end meeting through voting and discussion."""

    async def test_vote_then_discuss(self, api_client) -> None:
        session = await _create_session(api_client)
        sid = session["id"]
        alice = await _join(api_client, sid, "alice")
        bob = await _join(api_client, sid, "bob")
        first = await _ticket(api_client, sid, alice["id"], "Deploys", "TODO")
        second = await _ticket(api_client, sid, bob["id"], "Testing", "TODO")
        third = await _ticket(api_client, sid, bob["id"], "Hiring", "TODO")

        started = await api_client.post(f"{API}/voting/sessions/{sid}/rounds")
        assert started.status_code == 201
        round_id = started.json()["id"]

        active = (await api_client.get(f"{API}/voting/sessions/{sid}/active")).json()
        assert active["total_points"] == 4

        # Budget of 4: two votes on one ticket cost all of it
        cast = await api_client.post(
            f"{API}/voting/rounds/{round_id}/votes",
            json={"ticket_id": first["id"], "user_id": alice["id"], "vote_count": 2},
        )
        assert cast.json()["vote"]["points_cost"] == 4

        over = await api_client.post(
            f"{API}/voting/rounds/{round_id}/votes",
            json={"ticket_id": second["id"], "user_id": alice["id"], "vote_count": 1},
        )
        assert over.status_code == 422
        assert over.json()["detail"] == {
            "message": over.json()["detail"]["message"],
            "spent": 4,
            "cost": 1,
            "budget": 4,
        }

        await api_client.post(
            f"{API}/voting/rounds/{round_id}/votes",
            json={"ticket_id": second["id"], "user_id": bob["id"], "vote_count": 1},
        )
        mine = (await api_client.get(f"{API}/voting/rounds/{round_id}/votes/{bob['id']}")).json()
        assert mine["points_spent"] == 1
        assert mine["points_remaining"] == 3

        await api_client.post(f"{API}/voting/rounds/{round_id}/done", json={"user_id": alice["id"]})
        await api_client.post(f"{API}/voting/rounds/{round_id}/done", json={"user_id": bob["id"]})

        assert (await api_client.get(f"{API}/voting/sessions/{sid}/active")).json() is None
        listed = (
            await api_client.get(f"{API}/tickets", params={"session_id": sid, "user_id": alice["id"]})
        ).json()
        assert [t["id"] for t in listed] == [first["id"], second["id"], third["id"]]
        assert [t["vote_count"] for t in listed] == [2, 1, 0]

        moved = await api_client.post(
            f"{API}/tickets/{first['id']}/move", json={"space": "DOING", "user_id": alice["id"]}
        )
        assert moved.status_code == 200

        await api_client.post(
            f"{API}/continuation/tickets/{first['id']}/ballots",
            json={"user_id": alice["id"], "choice": "archive"},
        )
        await api_client.post(
            f"{API}/continuation/tickets/{first['id']}/ballots",
            json={"user_id": bob["id"], "choice": "archive"},
        )

        archived = (await api_client.get(f"{API}/tickets/{first['id']}")).json()
        assert archived["space"] == "ARCHIVE"
        assert archived["archived_by"] == "Majority Vote"

    async def test_round_needs_two_todo_tickets(self, api_client) -> None:
        session = await _create_session(api_client)
        alice = await _join(api_client, session["id"], "alice")
        await _ticket(api_client, session["id"], alice["id"], "Lonely", "TODO")

        response = await api_client.post(f"{API}/voting/sessions/{session['id']}/rounds")

        assert response.status_code == 422

    async def test_force_end_without_doing_is_409(self, api_client) -> None:
        session = await _create_session(api_client)
        alice = await _join(api_client, session["id"], "alice")
        ticket = await _ticket(api_client, session["id"], alice["id"], "Queued", "TODO")

        response = await api_client.post(f"{API}/continuation/tickets/{ticket['id']}/force-end")

        assert response.status_code == 409

    async def test_force_end_archives(self, api_client) -> None:
        session = await _create_session(api_client)
        alice = await _join(api_client, session["id"], "alice")
        ticket = await _ticket(api_client, session["id"], alice["id"], "Topic", "DOING")

        response = await api_client.post(f"{API}/continuation/tickets/{ticket['id']}/force-end")

        assert response.status_code == 200
        assert response.json()["decision"] == "archive"

    async def test_unknown_round_is_404(self, api_client) -> None:
        response = await api_client.post(
            f"{API}/voting/rounds/{uuid4()}/done", json={"user_id": str(uuid4())}
        )
        assert response.status_code == 404
