"""Fakes and packet builders shared by the my_ping tests."""

from collections import deque

from icmp_packet import ICMP_ECHO_REPLY, EchoRequest, encode_request


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeSocket:
    """Records sent packets and serves queued datagrams."""

    def __init__(self) -> None:
        self.sent: list[tuple[bytes, tuple[str, int]]] = []
        self.inbox: deque[bytes] = deque()
        self.closed = False

    def sendto(self, data, addr):
        self.sent.append((bytes(data), addr))
        return len(data)

    def recvfrom(self, bufsize):
        return self.inbox.popleft()[:bufsize], ("192.0.2.1", 0)

    def close(self):
        self.closed = True


def ip_header(ttl: int = 64) -> bytes:
    header = bytearray(20)
    header[0] = 0x45
    header[8] = ttl
    header[9] = 1
    return bytes(header)


def reply_datagram(identifier: int, sequence: int, timestamp: int = 0, ttl: int = 64) -> bytes:
    """Build an IPv4 datagram carrying a valid echo reply."""
    reply = EchoRequest(
        identifier=identifier,
        sequence=sequence,
        timestamp=timestamp,
        type=ICMP_ECHO_REPLY,
    )
    return ip_header(ttl) + encode_request(reply)
