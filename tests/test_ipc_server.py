import json
import threading
from typing import Any

import pytest
from fastapi.testclient import TestClient

from safe_launcher.common.channel import ApplicationChannel
from safe_launcher.common.models import ApplicationEncryptionKey
from safe_launcher.ipc.core import IpcServer
from safe_launcher.launcher.memory_network import InMemoryNetwork
from safe_launcher.launcher.session import Session


@pytest.fixture
def session() -> Session:
    network = InMemoryNetwork(iterations=1000)
    return Session.create_account("alice", "1234", "p@ss", authenticator=network)


@pytest.fixture
def server(session: Session) -> IpcServer:
    return IpcServer(session)


@pytest.fixture
def client(server: IpcServer) -> TestClient:
    return TestClient(server.app)


def attach(client: TestClient, name: str = "test-app") -> tuple[str, ApplicationChannel]:
    response = client.post("/apps", json={"name": name})
    assert response.status_code == 200  # noqa: PLR2004
    body = response.json()
    key = ApplicationEncryptionKey.from_hex(body["nonce"], body["key"])
    return body["app_id"], ApplicationChannel(key, is_launcher=False)


def call(
    client: TestClient,
    app_id: str,
    channel: ApplicationChannel,
    operation: str,
    **params: Any,
) -> dict[str, Any]:
    request = json.dumps({"operation": operation, "params": params}).encode()
    response = client.post(
        f"/apps/{app_id}/messages", json={"payload": channel.seal(request).hex()}
    )
    assert response.status_code == 200  # noqa: PLR2004
    return json.loads(channel.open(bytes.fromhex(response.json()["payload"])))


def test_server_routes(server: IpcServer) -> None:
    routes = [route.path for route in server.app.routes]  # type: ignore[attr-defined]
    assert "/health" in routes
    assert "/apps" in routes
    assert "/apps/{app_id}" in routes
    assert "/apps/{app_id}/messages" in routes


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200  # noqa: PLR2004
    assert response.json()["status"] == "ok"
    assert response.json()["attached"] == 0


def test_attach_issues_key(client: TestClient, session: Session) -> None:
    app_id, _ = attach(client)
    assert session.attached_applications() == [bytes.fromhex(app_id)]
    assert client.get("/health").json()["attached"] == 1


def test_attach_gives_each_application_its_own_key(client: TestClient) -> None:
    first = client.post("/apps", json={"name": "one"}).json()
    second = client.post("/apps", json={"name": "two"}).json()
    assert first["app_id"] != second["app_id"]
    assert first["key"] != second["key"]
    assert first["nonce"] != second["nonce"]


def test_sealed_operations(client: TestClient) -> None:
    app_id, channel = attach(client)
    assert call(client, app_id, channel, "put", name="doc", value={"v": 1}) == {
        "ok": True,
        "result": 1,
        "error": None,
    }
    assert call(client, app_id, channel, "get", name="doc")["result"] == {"v": 1}
    assert call(client, app_id, channel, "list_names")["result"] == ["doc"]


def test_engine_error_is_returned_sealed(client: TestClient) -> None:
    app_id, channel = attach(client)
    reply = call(client, app_id, channel, "get", name="missing")
    assert reply["ok"] is False
    assert "missing" in reply["error"]


def test_unknown_operation(client: TestClient) -> None:
    app_id, channel = attach(client)
    request = json.dumps({"operation": "log_out", "params": {}}).encode()
    response = client.post(
        f"/apps/{app_id}/messages", json={"payload": channel.seal(request).hex()}
    )
    assert response.status_code == 400  # noqa: PLR2004
    assert response.json()["detail"] == "unknown operation: log_out"
    # The channel stays usable
    assert call(client, app_id, channel, "list_names")["ok"] is True


def test_unknown_application_is_unauthorised(client: TestClient) -> None:
    response = client.post(
        f"/apps/{'00' * 32}/messages", json={"payload": "00" * 40}
    )
    assert response.status_code == 401  # noqa: PLR2004


def test_malformed_application_id(client: TestClient) -> None:
    response = client.post("/apps/not-hex/messages", json={"payload": "00"})
    assert response.status_code == 400  # noqa: PLR2004


def test_tampered_message_rejected(client: TestClient) -> None:
    app_id, channel = attach(client)
    sealed = bytearray(channel.seal(b'{"operation": "list_names"}'))
    sealed[-1] ^= 0xFF
    response = client.post(f"/apps/{app_id}/messages", json={"payload": sealed.hex()})
    assert response.status_code == 400  # noqa: PLR2004


def test_message_sealed_for_another_application(client: TestClient) -> None:
    app_a, _ = attach(client, "a")
    _, channel_b = attach(client, "b")
    sealed = channel_b.seal(b'{"operation": "list_names"}')
    response = client.post(f"/apps/{app_a}/messages", json={"payload": sealed.hex()})
    assert response.status_code == 400  # noqa: PLR2004


def test_replayed_message_rejected(client: TestClient) -> None:
    app_id, channel = attach(client)
    payload = channel.seal(b'{"operation": "list_names"}').hex()
    first = client.post(f"/apps/{app_id}/messages", json={"payload": payload})
    second = client.post(f"/apps/{app_id}/messages", json={"payload": payload})
    assert first.status_code == 200  # noqa: PLR2004
    assert second.status_code == 400  # noqa: PLR2004


def test_malformed_request_body(client: TestClient) -> None:
    app_id, channel = attach(client)
    sealed = channel.seal(b"not json")
    response = client.post(f"/apps/{app_id}/messages", json={"payload": sealed.hex()})
    assert response.status_code == 400  # noqa: PLR2004


def test_detach_revokes(client: TestClient, session: Session) -> None:
    app_id, channel = attach(client)
    response = client.delete(f"/apps/{app_id}")
    assert response.status_code == 200  # noqa: PLR2004
    assert response.json() == {"detached": True}
    assert session.attached_applications() == []

    sealed = channel.seal(b'{"operation": "list_names"}')
    response = client.post(f"/apps/{app_id}/messages", json={"payload": sealed.hex()})
    assert response.status_code == 401  # noqa: PLR2004


def test_detach_is_idempotent(client: TestClient) -> None:
    app_id, _ = attach(client)
    client.delete(f"/apps/{app_id}")
    response = client.delete(f"/apps/{app_id}")
    assert response.status_code == 200  # noqa: PLR2004
    assert response.json() == {"detached": False}


def test_poisoned_engine_is_service_unavailable(
    client: TestClient, session: Session
) -> None:
    app_id, channel = attach(client)
    session._guard.poison("test")  # noqa: SLF001
    sealed = channel.seal(b'{"operation": "list_names"}')
    response = client.post(f"/apps/{app_id}/messages", json={"payload": sealed.hex()})
    assert response.status_code == 503  # noqa: PLR2004
    assert client.get("/health").json()["status"] == "degraded"


def test_custom_operation_table(session: Session) -> None:
    server = IpcServer(
        session, operations={"count": lambda engine, params: len(engine.list_names())}
    )
    client = TestClient(server.app)
    app_id, channel = attach(client)
    assert call(client, app_id, channel, "count")["result"] == 0


def test_requests_delivered_out_of_order(client: TestClient) -> None:
    app_id, channel = attach(client)
    first = channel.seal(b'{"operation": "put", "params": {"name": "a", "value": 1}}')
    second = channel.seal(b'{"operation": "put", "params": {"name": "b", "value": 2}}')

    late = client.post(f"/apps/{app_id}/messages", json={"payload": second.hex()})
    early = client.post(f"/apps/{app_id}/messages", json={"payload": first.hex()})
    assert late.status_code == 200  # noqa: PLR2004
    assert early.status_code == 200  # noqa: PLR2004

    # Replies arrive in the order the launcher sealed them; open them reversed
    for response in (early, late):
        reply = json.loads(channel.open(bytes.fromhex(response.json()["payload"])))
        assert reply["ok"] is True
    assert sorted(call(client, app_id, channel, "list_names")["result"]) == ["a", "b"]


def test_concurrent_calls_from_one_application(client: TestClient) -> None:
    app_id, channel = attach(client)
    workers = 8
    barrier = threading.Barrier(workers)
    replies: list[dict[str, Any]] = []
    lock = threading.Lock()

    def worker(index: int) -> None:
        barrier.wait()
        reply = call(client, app_id, channel, "put", name=f"doc-{index}", value=index)
        with lock:
            replies.append(reply)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(replies) == workers
    assert all(reply["ok"] for reply in replies)
    assert len(call(client, app_id, channel, "list_names")["result"]) == workers
