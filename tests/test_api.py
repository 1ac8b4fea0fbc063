"""Tests for the FastAPI adapter and the echo WebSocket."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from people_counter.analytics.query_engine import QueryEngine
from people_counter.api.app import create_app
from people_counter.api.websocket import echo_reply
from people_counter.exceptions import StoreUnavailable


@pytest.fixture
def client(engine: QueryEngine) -> TestClient:
    return TestClient(create_app(engine))


class TestBasicRoutes:
    def test_hello(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "Hello, World!"

    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"ok": True}

    def test_shutdown_hook_runs_once_on_exit(self, engine: QueryEngine) -> None:
        on_shutdown = MagicMock()
        with TestClient(create_app(engine, on_shutdown=on_shutdown)) as client:
            client.get("/health")
            on_shutdown.assert_not_called()
        on_shutdown.assert_called_once_with()


class TestNewData:
    def test_create(self, client: TestClient) -> None:
        response = client.post("/new_data", json={"nb_people": 7, "source": "doorA"})
        assert response.status_code == 201
        assert response.json() == {"time": "09:05", "nb_people": 7, "source": "doorA"}

    def test_create_without_source(self, client: TestClient) -> None:
        response = client.post("/new_data", json={"nb_people": 2})
        assert response.status_code == 201
        assert response.json()["source"] is None

    def test_create_missing_count(self, client: TestClient) -> None:
        response = client.post("/new_data", json={"source": "doorA"})
        assert response.status_code == 422

    def test_create_count_beyond_64_bits(self, client: TestClient) -> None:
        response = client.post("/new_data", json={"nb_people": 10**20})
        assert response.status_code == 422
        assert client.get("/get_people/5").json() == []


class TestQueries:
    def test_get_people(self, client: TestClient, clock) -> None:
        client.post("/new_data", json={"nb_people": 1})
        clock.advance(minutes=10)
        client.post("/new_data", json={"nb_people": 2, "source": "doorB"})

        response = client.get("/get_people/5")
        assert response.status_code == 200
        assert response.json() == [
            {"time": "09:15", "nb_people": 2, "source": "doorB"},
            {"time": "09:05", "nb_people": 1, "source": None},
        ]

    def test_get_people_zero(self, client: TestClient) -> None:
        client.post("/new_data", json={"nb_people": 1})
        response = client.get("/get_people/0")
        assert response.status_code == 200
        assert response.json() == []

    def test_get_people_huge_limit(self, client: TestClient) -> None:
        client.post("/new_data", json={"nb_people": 1})
        response = client.get("/get_people/9223372036854775808")
        assert response.status_code == 200
        assert [item["nb_people"] for item in response.json()] == [1]

    def test_get_day_out_of_range(self, client: TestClient) -> None:
        response = client.post("/get_day", json={"date": "9999-12-31"})
        assert response.status_code == 400
        assert "out of supported range" in response.json()["error"]

    def test_get_hours_out_of_range(self, client: TestClient) -> None:
        response = client.post("/get_hours", json={"date": "9999-12-31"})
        assert response.status_code == 400

    def test_get_day(self, client: TestClient) -> None:
        client.post("/new_data", json={"nb_people": 4})
        response = client.post("/get_day", json={"date": "2024-05-01"})
        assert response.status_code == 200
        assert [item["nb_people"] for item in response.json()] == [4]

    def test_get_day_invalid(self, client: TestClient) -> None:
        response = client.post("/get_day", json={"date": "not-a-date"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_today_and_yesterday(self, client: TestClient, clock) -> None:
        client.post("/new_data", json={"nb_people": 1})
        clock.advance(days=1)
        client.post("/new_data", json={"nb_people": 2})

        assert [i["nb_people"] for i in client.get("/get_today").json()] == [2]
        assert [i["nb_people"] for i in client.get("/get_yesterday").json()] == [1]

    def test_get_hours(self, client: TestClient, clock) -> None:
        client.post("/new_data", json={"nb_people": 3, "source": "doorA"})
        clock.advance(minutes=30)
        client.post("/new_data", json={"nb_people": 4, "source": "doorB"})

        response = client.post("/get_hours", json={"date": "2024-05-01"})
        assert response.status_code == 200
        assert response.json() == [{"time": "09:00", "nb_people": 7, "source": None}]

    def test_store_unavailable_maps_to_500(self) -> None:
        engine = MagicMock(spec=QueryEngine)
        engine.latest.side_effect = StoreUnavailable("database is locked")
        client = TestClient(create_app(engine))
        response = client.get("/get_people/3")
        assert response.status_code == 500
        assert response.json() == {"error": "database is locked"}


class TestWebSocket:
    def test_echo_text(self, client: TestClient) -> None:
        with client.websocket_connect("/web_socket") as ws:
            ws.send_text("hello")
            assert ws.receive_text() == "Echo back text: hello"

    def test_echo_bytes(self, client: TestClient) -> None:
        with client.websocket_connect("/web_socket") as ws:
            ws.send_bytes(b"\x00\x01\x02")
            assert ws.receive_text() == "Received bytes of length: 3"

    def test_echo_does_not_touch_engine(self) -> None:
        engine = MagicMock(spec=QueryEngine)
        client = TestClient(create_app(engine))
        with client.websocket_connect("/web_socket") as ws:
            ws.send_text("ping")
            ws.receive_text()
        assert engine.method_calls == []

    def test_echo_reply_ignores_other_frames(self) -> None:
        assert echo_reply({"type": "websocket.receive"}) is None
