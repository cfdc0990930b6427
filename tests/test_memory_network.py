import pytest

from safe_launcher.launcher.memory_network import (
    AccountExistsError,
    InMemoryNetwork,
    InvalidCredentialsError,
    NetworkError,
)


@pytest.fixture
def network() -> InMemoryNetwork:
    return InMemoryNetwork(iterations=1000)


def test_register_then_login_share_account(network: InMemoryNetwork) -> None:
    client = network.register("alice", "1234", "p@ss")
    client.put("greeting", "hello")
    again = network.login("alice", "1234", "p@ss")
    assert again.get("greeting") == "hello"
    assert again.locator == client.locator


def test_register_twice_fails(network: InMemoryNetwork) -> None:
    network.register("alice", "1234", "p@ss")
    with pytest.raises(AccountExistsError):
        network.register("alice", "1234", "p@ss")


def test_login_unknown_account(network: InMemoryNetwork) -> None:
    with pytest.raises(InvalidCredentialsError):
        network.login("nobody", "0000", "secret")


def test_login_wrong_password(network: InMemoryNetwork) -> None:
    network.register("alice", "1234", "p@ss")
    with pytest.raises(InvalidCredentialsError):
        network.login("alice", "1234", "wrong")


def test_credentials_are_not_normalized(network: InMemoryNetwork) -> None:
    network.register("alice", "1234", "p@ss")
    with pytest.raises(InvalidCredentialsError):
        network.login("alice ", "1234", "p@ss")


def test_client_operations(network: InMemoryNetwork) -> None:
    client = network.register("bob", "9999", "hunter2")
    assert client.put("a", 1) == 1
    assert client.put("b", [1, 2]) == 2  # noqa: PLR2004
    assert client.list_names() == ["a", "b"]
    assert client.delete("a") is True
    assert client.delete("a") is False
    with pytest.raises(NetworkError):
        client.get("a")


def test_logged_out_client_refuses_work(network: InMemoryNetwork) -> None:
    client = network.register("carol", "1111", "pw")
    client.log_out()
    with pytest.raises(NetworkError, match="logged out"):
        client.put("x", 1)
