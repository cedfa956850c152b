import random

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from rendezvous.app import FALLBACK_HTML, _static_file, create_app
from rendezvous.config import Settings
from tests.conftest import answer, offer


@pytest.fixture
def settings(tmp_path):
    static = tmp_path / "static"
    static.mkdir()
    (static / "index.html").write_text("<h1>peer client</h1>", encoding="utf-8")
    (static / "js").mkdir()
    (static / "js" / "app.js").write_text("console.log('boot');", encoding="utf-8")
    return Settings(static_dir=str(static), rtt_file=str(tmp_path / "rtt.dat"))


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings, rng=random.Random(5))) as client:
        yield client


def _join_alone(ws, peer_id):
    """Send a lone offer; the ACK/denied pair proves the peer is registered."""
    ws.send_json(offer(peer_id, seqnr=1, inner_seqnr=7))
    ack = ws.receive_json()
    route = ws.receive_json()
    return ack, route


def test_index_is_served(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "peer client" in response.text


def test_static_file_is_served(client):
    response = client.get("/js/app.js")
    assert response.status_code == 200
    assert "boot" in response.text


def test_missing_file_falls_back_to_info_page(client):
    response = client.get("/does/not/exist.html")
    assert response.status_code == 200
    assert response.text == FALLBACK_HTML


def test_static_lookup_stays_inside_root(settings, tmp_path):
    (tmp_path / "secret.txt").write_text("nope", encoding="utf-8")
    root = tmp_path / "static"
    assert _static_file(root.resolve(), "../secret.txt") is None
    assert _static_file(root.resolve(), "js") is None
    assert _static_file(root.resolve(), "") == (root / "index.html").resolve()


def test_lone_peer_offer_is_denied(client):
    with client.websocket_connect("/ws/A") as a:
        ack, route = _join_alone(a, "A")

    assert ack == {"type": "ACK", "seqnr": 1, "to": "A", "from": "signaling-server"}
    assert route["type"] == "ROUTE"
    assert route["to"] == "A"
    assert route["payload"]["seqnr"] == 7
    assert route["payload"]["payload"] == {"type": "denied"}


def test_offer_and_answer_are_relayed(client):
    with client.websocket_connect("/ws/A") as a:
        _join_alone(a, "A")
        with client.websocket_connect("/ws/B") as b:
            b.send_json(offer("B", seqnr=2, inner_seqnr=9))
            received = a.receive_json()
            assert received["from"] == "B"
            assert received["to"] == "A"
            assert received["payload"]["payload"]["type"] == "offer"

            a.send_json(answer("A", to="B"))
            relayed = b.receive_json()
            assert relayed["from"] == "A"
            assert relayed["payload"]["payload"]["type"] == "answer"

            status = client.get("/status").json()
            assert status == {"peers": 2, "peer_ids": ["A", "B"]}


def test_unknown_receiver_yields_error(client):
    with client.websocket_connect("/ws/A") as a:
        _join_alone(a, "A")
        a.send_text("this is not json")
        a.send_json({"from": "A", "to": "Z", "seqnr": 42})
        err = a.receive_json()

    assert err["type"] == "ERROR"
    assert err["seqnr"] == 42
    assert err["to"] == "A"


@pytest.mark.parametrize("path", ["/ws/", "/somewhere", "/ws"])
def test_malformed_socket_paths_are_refused(client, path):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(path) as ws:
            ws.receive_text()


def test_rtt_collector_is_accepted_outside_the_registry(client):
    with client.websocket_connect("/rttcollector") as ws:
        ws.send_text("12.5")
        assert client.get("/status").json()["peers"] == 0


def test_percent_encoded_peer_id_is_kept_verbatim(client):
    with client.websocket_connect("/ws/a%20b") as ws:
        ack, route = _join_alone(ws, "a%20b")
        assert ack["to"] == "a%20b"
        assert route["payload"]["payload"] == {"type": "denied"}
        assert client.get("/status").json()["peer_ids"] == ["a%20b"]


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "OPTIONS"])
def test_any_http_method_gets_a_page(client, method):
    found = client.request(method, "/")
    assert found.status_code == 200
    assert "peer client" in found.text

    missing = client.request(method, "/nothing/here")
    assert missing.status_code == 200
    assert missing.text == FALLBACK_HTML
