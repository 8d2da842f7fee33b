"""
ping_session.py - Event loop driving one ICMP echo session.

A :class:`PingSession` owns the sequence counter and the probe window.
It reacts to two kinds of events handed to it by a :class:`Poller`:

* the periodic timer fired: send the next probe, reporting a timeout if
  the slot it reuses was never answered;
* the raw socket is readable: read one datagram, validate it and report
  the round-trip time if it answers one of our probes.

Everything runs on one thread; the only blocking call is the wait in
:meth:`Poller.wait`.
"""

import enum
import logging
import select
import socket
import time
from typing import Callable

from icmp_packet import EchoRequest, encode_request, ip_ttl, parse_reply
from probe_window import ProbeWindow

MTU = 1500
PING_INTERVAL = 1.0     # Seconds between probes
FIRST_PING_DELAY = 1e-6

logger = logging.getLogger(__name__)


class PingError(Exception):
    """Fatal error that ends the session."""


class SocketError(PingError):
    """A raw socket call failed."""


class AddressError(PingError):
    """The target is not a dotted-decimal IPv4 address."""


class Source(enum.Enum):
    """Event sources multiplexed by :class:`Poller`."""

    SOCKET = "socket"
    TIMER = "timer"


def create_socket() -> socket.socket:
    """Create the raw ICMP socket used for both sending and receiving.

    Returns:
        Raw ``AF_INET`` ICMP socket.

    Raises:
        SocketError: If the socket cannot be created.
    """
    try:
        return socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
    except PermissionError as exc:
        raise SocketError(
            "raw socket requires root privileges. Try running with sudo."
        ) from exc
    except OSError as exc:
        raise SocketError(f"socket: {exc}") from exc


class PeriodicTimer:
    """Deadline-based periodic timer.

    Fires once *initial_delay* seconds after creation and then every
    *interval* seconds.  Each expiry stays pending until
    :meth:`acknowledge` is called.
    """

    def __init__(
        self,
        interval: float = PING_INTERVAL,
        initial_delay: float = FIRST_PING_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"timer interval must be positive, got {interval}")
        self.interval = interval
        self._clock = clock
        self._deadline = clock() + initial_delay

    def remaining(self) -> float:
        """Seconds until the next expiry, ``0.0`` if already expired."""
        return max(self._deadline - self._clock(), 0.0)

    def expired(self) -> bool:
        return self._clock() >= self._deadline

    def acknowledge(self) -> int:
        """Drain pending expiries and schedule the next one.

        Returns:
            Number of expiries since the last acknowledgement (0 if the
            timer has not fired yet).
        """
        now = self._clock()
        if now < self._deadline:
            return 0
        count = int((now - self._deadline) // self.interval) + 1
        self._deadline += count * self.interval
        return count


class Poller:
    """Waits until either the socket or the timer is ready.

    The timer is not a file descriptor, so its remaining time bounds the
    ``select`` call on the socket.
    """

    def __init__(self, sock: socket.socket, timer: PeriodicTimer) -> None:
        self.sock = sock
        self.timer = timer

    def wait(self) -> Source:
        """Block until one source is ready and return it.

        An expired timer is reported before a readable socket so a steady
        stream of incoming traffic cannot delay the next probe.

        Raises:
            PingError: If ``select`` fails.
        """
        while True:
            if self.timer.expired():
                return Source.TIMER
            try:
                readable, _, _ = select.select(
                    [self.sock], [], [], self.timer.remaining()
                )
            except (OSError, ValueError) as exc:
                raise PingError(f"select: {exc}") from exc
            if readable:
                return Source.SOCKET


class PingSession:
    """State of one ping session against a single IPv4 target.

    Args:
        sock:       Raw ICMP socket.
        target:     Dotted-decimal IPv4 address of the target.
        identifier: ICMP identifier, usually the process id.
        window:     Probe window; a fresh 5-slot window by default.
        clock:      Monotonic clock in seconds, used for RTT.
        wall_clock: Wall clock in seconds, used for the packet timestamp.
    """

    def __init__(
        self,
        sock: socket.socket,
        target: str,
        identifier: int,
        window: ProbeWindow | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.sock = sock
        self.target = target
        self.identifier = identifier & 0xFFFF
        self.window = window if window is not None else ProbeWindow()
        self.seq = 0
        self._clock = clock
        self._wall_clock = wall_clock

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def on_timer(self) -> int | None:
        """Send the next probe.

        Returns:
            Sequence number of the probe reported as timed out, or ``None``.

        Raises:
            SocketError: If sending fails.
        """
        self.seq += 1
        timed_out = self.window.record_send(self.seq, self._now_ms())
        if timed_out is not None:
            print(f"timeout seq={timed_out}")

        request = EchoRequest(
            identifier=self.identifier,
            sequence=self.seq,
            timestamp=int(self._wall_clock()),
        )
        try:
            self.sock.sendto(encode_request(request), (self.target, 0))
        except OSError as exc:
            raise SocketError(f"sendto: {exc}") from exc
        logger.debug("sent seq=%d to %s", self.seq, self.target)
        return timed_out

    def on_readable(self) -> float | None:
        """Read one datagram and report it if it answers one of our probes.

        Returns:
            Round-trip time in milliseconds, or ``None`` if the datagram
            was dropped.

        Raises:
            SocketError: If receiving fails.
        """
        try:
            datagram, addr = self.sock.recvfrom(MTU)
        except OSError as exc:
            raise SocketError(f"recvfrom: {exc}") from exc
        now = self._now_ms()

        reply = parse_reply(datagram)
        if reply is None:
            logger.debug("dropped %d-byte datagram from %s", len(datagram), addr)
            return None
        if reply.identifier != self.identifier:
            logger.debug("dropped reply with foreign identifier %d", reply.identifier)
            return None

        seq = self.window.match(reply.sequence)
        if seq is None:
            logger.debug("dropped stale reply seq=%d", reply.sequence)
            return None
        elapsed = self.window.resolve(seq, now)
        if elapsed is None:
            return None

        print(f"reply seq={seq} ttl={ip_ttl(datagram)} time={elapsed:.2f}ms")
        return elapsed

    def handle(self, source: Source) -> None:
        """Dispatch one readiness event."""
        if source is Source.TIMER:
            self.on_timer()
        elif source is Source.SOCKET:
            self.on_readable()
        else:
            raise PingError(f"unknown event source {source!r}")

    def run(self, poller: Poller) -> None:
        """Serve events from *poller* until a fatal error is raised."""
        while True:
            source = poller.wait()
            if source is Source.TIMER:
                missed = poller.timer.acknowledge() - 1
                if missed > 0:
                    logger.debug("timer fired %d extra times", missed)
            self.handle(source)
