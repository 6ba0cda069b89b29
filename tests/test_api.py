import pytest
from fastapi.testclient import TestClient

from auctionhouse.api.main import app


@pytest.fixture
def client():
    return TestClient(app)


def _create_player(client, name):
    response = client.post("/api/players/", json={"name": name})
    assert response.status_code == 201
    return response.json()["id"]


def _as(player_id):
    return {"X-Player-Id": player_id}


class TestPlayers:
    def test_create_and_get(self, client):
        player_id = _create_player(client, "sam")

        response = client.get(f"/api/players/{player_id}")

        assert response.status_code == 200
        assert response.json() == {"id": player_id, "name": "sam", "coins": 1000}

    def test_unknown_player(self, client):
        assert client.get("/api/players/nobody").status_code == 404

    def test_inventory_lists_held_items(self, client, cluster):
        player_id = _create_player(client, "sam")
        cluster.collection("inventory").write_raw(
            f"{player_id}::carrot", {"player_id": player_id, "item": "carrot", "quantity": 0}
        )

        response = client.get(f"/api/players/{player_id}/inventory")

        assert response.status_code == 200
        assert response.json() == [
            {"item": "bread", "quantity": 30},
            {"item": "diamond", "quantity": 1},
        ]

    def test_inventory_of_unknown_player(self, client):
        assert client.get("/api/players/nobody/inventory").status_code == 404


class TestEnqueue:
    def test_requires_player(self, client):
        response = client.post("/api/auctions/", json={"item": "carrot", "quantity": 1, "min_bid": 1})
        assert response.status_code == 401

        response = client.post(
            "/api/auctions/", json={"item": "carrot", "quantity": 1, "min_bid": 1}, headers=_as("ghost")
        )
        assert response.status_code == 401

    def test_bad_shape(self, client):
        seller = _create_player(client, "sam")

        response = client.post("/api/auctions/", json={"item": "carrot", "quantity": "lots"}, headers=_as(seller))

        assert response.status_code == 400
        assert response.json()["detail"]["type"] == "badRequest"

    def test_more_than_held(self, client):
        seller = _create_player(client, "sam")

        response = client.post(
            "/api/auctions/", json={"item": "carrot", "quantity": 19, "min_bid": 1}, headers=_as(seller)
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "Player sam does not have enough quantity of carrot"


class TestAuctionFlow:
    def test_activate_empty_queue(self, client):
        response = client.post("/api/auctions/activate")

        assert response.status_code == 404
        assert response.json()["detail"]["type"] == "notFound"

    def test_full_auction(self, client, clock):
        seller = _create_player(client, "sam")
        bidder = _create_player(client, "alice")

        queued = client.post(
            "/api/auctions/", json={"item": "carrot", "quantity": 10, "min_bid": 5}, headers=_as(seller)
        )
        assert queued.status_code == 201
        auction_id = queued.json()["auction"]["id"]
        assert queued.json()["auction"]["state"] == "queued"
        assert queued.json()["current_auction"] is None

        activated = client.post("/api/auctions/activate", json={"duration_seconds": 30})
        assert activated.status_code == 200
        assert activated.json()["auction"]["state"] == "active"
        assert client.get("/api/auctions/current").json()["id"] == auction_id

        low = client.post("/api/auctions/current/bid", json={"amount": 4}, headers=_as(bidder))
        assert low.status_code == 403
        assert low.json()["detail"]["error"] == f"Minimum allowed bid for auction {auction_id} is 5"

        own = client.post("/api/auctions/current/bid", json={"amount": 50}, headers=_as(seller))
        assert own.status_code == 403

        bid = client.post("/api/auctions/current/bid", json={"amount": 5}, headers=_as(bidder))
        assert bid.status_code == 200
        assert bid.json()["auction"]["winner_name"] == "alice"

        early = client.post(f"/api/auctions/{auction_id}/settle")
        assert early.status_code == 403

        clock.advance(31)
        assert client.get("/api/auctions/current").status_code == 404
        assert client.get("/api/auctions/latest").json()["id"] == auction_id

        settled = client.post(f"/api/auctions/{auction_id}/settle")
        assert settled.status_code == 200
        assert settled.json()["auction"]["done"] is True
        assert settled.json()["auction"]["state"] == "done"

        assert client.get(f"/api/players/{seller}").json()["coins"] == 1005
        assert client.get(f"/api/players/{bidder}").json()["coins"] == 995

    def test_unknown_auction(self, client):
        assert client.get("/api/auctions/missing").status_code == 404
        assert client.post("/api/auctions/missing/settle").status_code == 404

    def test_bid_without_auction(self, client):
        bidder = _create_player(client, "alice")

        response = client.post("/api/auctions/current/bid", json={"amount": 5}, headers=_as(bidder))

        assert response.status_code == 404


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
