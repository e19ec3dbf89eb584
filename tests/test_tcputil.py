import socket

import pytest

from yrpckit.tcputil import get_socket_error, set_nodelay, set_nonblocking


@pytest.fixture
def tcp_pair():
    server = socket.create_server(("127.0.0.1", 0))
    client = socket.create_connection(server.getsockname())
    peer, _ = server.accept()
    yield client, peer
    client.close()
    peer.close()
    server.close()


def test_set_nonblocking_reports_previous_mode(tcp_pair):
    client, _ = tcp_pair
    assert set_nonblocking(client) is True
    assert client.getblocking() is False
    assert set_nonblocking(client) is False


def test_nonblocking_recv_does_not_wait(tcp_pair):
    client, _ = tcp_pair
    set_nonblocking(client)
    with pytest.raises(BlockingIOError):
        client.recv(16)


def test_set_nodelay_toggles_option(tcp_pair):
    client, _ = tcp_pair
    set_nodelay(client, True)
    assert client.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) != 0
    set_nodelay(client, False)
    assert client.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) == 0


def test_connected_socket_has_no_error(tcp_pair):
    client, peer = tcp_pair
    assert get_socket_error(client) == 0
    assert get_socket_error(peer) == 0


def test_set_nodelay_on_closed_socket_raises():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.close()
    with pytest.raises(OSError):
        set_nodelay(sock, True)