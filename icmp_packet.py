"""
icmp_packet.py - ICMP echo packet encoding, decoding and checksum.

Wire layout of an echo packet (16 bytes)::

    0      1      2             4             6             8                16
    | type | code | checksum    | identifier  | sequence    | timestamp       |

All integers are big-endian except the timestamp, which is opaque payload
echoed back by the peer and stored in native byte order.
"""

import struct
from dataclasses import dataclass

ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8

ECHO_PACKET_SIZE = 16
IPV4_HEADER_SIZE = 20  # No IP options
TTL_OFFSET = 8
CHECKSUM_OFFSET = 2

_HEADER = struct.Struct("!BBHHH")
_TIMESTAMP = struct.Struct("=Q")


class PacketSizeError(ValueError):
    """Raised when a buffer does not match the echo packet size."""


@dataclass(frozen=True)
class EchoRequest:
    """Outbound echo request. The checksum is always computed on encode."""

    identifier: int
    sequence: int
    timestamp: int
    type: int = ICMP_ECHO_REQUEST
    code: int = 0


@dataclass(frozen=True)
class EchoReply:
    """Validated inbound echo reply, integers in host byte order."""

    type: int
    code: int
    checksum: int
    identifier: int
    sequence: int
    timestamp: int


def checksum(data: bytes) -> int:
    """Compute the Internet checksum (RFC 1071) over *data*.

    Words are summed in network byte order, an odd trailing byte is padded
    with a zero byte, and carries are folded back in before the sum is
    complemented.

    Args:
        data: Raw bytes to checksum.

    Returns:
        16-bit checksum as an integer, to be stored big-endian.
    """
    if len(data) % 2 != 0:
        data = bytes(data) + b'\x00'

    total = 0
    for (word,) in struct.iter_unpack("!H", data):
        total += word

    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)

    return ~total & 0xFFFF


def serialize_into(request: EchoRequest, buf: bytearray | memoryview) -> None:
    """Write *request* into *buf* as a 16-byte echo packet.

    Any checksum the caller had in mind is ignored: the field is zeroed,
    the packet is summed, and the result is written back at offset 2.

    Args:
        request: The echo request to encode.
        buf:     Writable buffer of exactly ``ECHO_PACKET_SIZE`` bytes.

    Raises:
        PacketSizeError: If *buf* is not exactly 16 bytes long.
    """
    if len(buf) != ECHO_PACKET_SIZE:
        raise PacketSizeError(
            f"echo packet buffer must be {ECHO_PACKET_SIZE} bytes, got {len(buf)}"
        )

    _HEADER.pack_into(
        buf,
        0,
        request.type,
        request.code,
        0,
        request.identifier & 0xFFFF,
        request.sequence & 0xFFFF,
    )
    _TIMESTAMP.pack_into(buf, _HEADER.size, request.timestamp & 0xFFFFFFFFFFFFFFFF)
    struct.pack_into("!H", buf, CHECKSUM_OFFSET, checksum(bytes(buf)))


def encode_request(request: EchoRequest) -> bytes:
    """Return the wire bytes for *request*."""
    buf = bytearray(ECHO_PACKET_SIZE)
    serialize_into(request, buf)
    return bytes(buf)


def parse_icmp(data: bytes) -> EchoReply | None:
    """Validate an ICMP message and decode it as an echo reply.

    Validation stops at the first failure: the message must be at least 16
    bytes, have type 0 and code 0, and carry a checksum matching the one
    recomputed over the message with its checksum field zeroed.

    Args:
        data: ICMP message bytes, without the IP header.

    Returns:
        The decoded reply, or ``None`` if *data* is not a valid echo reply.
    """
    if len(data) < ECHO_PACKET_SIZE:
        return None

    mtype, code, received, identifier, sequence = _HEADER.unpack_from(data)
    if mtype != ICMP_ECHO_REPLY or code != 0:
        return None

    copy = bytearray(data)
    copy[CHECKSUM_OFFSET:CHECKSUM_OFFSET + 2] = b'\x00\x00'
    if checksum(copy) != received:
        return None

    (timestamp,) = _TIMESTAMP.unpack_from(data, _HEADER.size)
    return EchoReply(
        type=mtype,
        code=code,
        checksum=received,
        identifier=identifier,
        sequence=sequence,
        timestamp=timestamp,
    )


def parse_reply(datagram: bytes) -> EchoReply | None:
    """Strip the IPv4 header from *datagram* and parse the echo reply.

    The header is assumed to be exactly 20 bytes; datagrams carrying IP
    options are misparsed and end up rejected by validation.

    Args:
        datagram: Full IPv4 datagram as delivered by a raw socket.

    Returns:
        The decoded reply, or ``None`` if the datagram is not a valid
        echo reply.
    """
    return parse_icmp(datagram[IPV4_HEADER_SIZE:])


def ip_ttl(datagram: bytes) -> int | None:
    """Return the TTL field of an IPv4 datagram, or ``None`` if truncated."""
    if len(datagram) <= TTL_OFFSET:
        return None
    return datagram[TTL_OFFSET]
