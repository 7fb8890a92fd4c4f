import pytest

from reactornet.inet_address import InetAddress


def test_defaults():
    addr = InetAddress()
    assert addr.to_ip() == "127.0.0.1"
    assert addr.to_port() == 0


def test_to_ip_port():
    assert InetAddress(8000).to_ip_port() == "127.0.0.1:8000"


def test_custom_ip():
    addr = InetAddress(80, "10.1.2.3")
    assert addr.to_ip() == "10.1.2.3"
    assert addr.sockaddr() == ("10.1.2.3", 80)


def test_from_sockaddr_round_trip():
    addr = InetAddress(1234, "192.168.1.1")
    assert InetAddress.from_sockaddr(addr.sockaddr()) == addr


def test_invalid_ip_rejected():
    with pytest.raises(ValueError):
        InetAddress(80, "not-an-ip")


@pytest.mark.parametrize("port", [-1, 65536])
def test_port_out_of_range(port):
    with pytest.raises(ValueError):
        InetAddress(port)


def test_str_is_ip_port():
    addr = InetAddress(9, "127.0.0.1")
    assert str(addr) == addr.to_ip_port()