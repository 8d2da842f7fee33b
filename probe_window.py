"""
probe_window.py - Fixed-size record of in-flight echo probes.

Probe ``seq`` lives in slot ``seq % size``. Sending a probe reuses the slot
of the probe sent ``size`` sequence numbers earlier, so a slot that is
still occupied at that moment belongs to a probe that was never answered.
This only holds while sequence numbers increase by exactly one per probe.
"""

import logging

WINDOW_SIZE = 5
WIRE_SEQ_MASK = 0xFFFF

logger = logging.getLogger(__name__)


class ProbeWindow:
    """Tracks send times of the last *size* probes.

    Sequence numbers handed to the window are unbounded integers; only
    the copy written on the wire is truncated to 16 bits.  Use
    :meth:`match` to map a wire sequence number back onto the window.
    """

    def __init__(self, size: int = WINDOW_SIZE) -> None:
        if size < 1:
            raise ValueError(f"window size must be positive, got {size}")
        self.size = size
        self.current_seq: int | None = None
        self._slots: list[float | None] = [None] * size

    def record_send(self, seq: int, timestamp: float) -> int | None:
        """Record that probe *seq* was sent at *timestamp*.

        Args:
            seq:       Sequence number of the probe being sent.
            timestamp: Send time, in the same unit later passed to
                       :meth:`resolve`.

        Returns:
            The sequence number of the probe that timed out because its
            slot is being reused, or ``None``.
        """
        index = seq % self.size
        timed_out = None
        if self._slots[index] is not None:
            timed_out = seq - self.size
        self._slots[index] = timestamp
        self.current_seq = seq
        return timed_out

    def resolve(self, seq: int, now: float) -> float | None:
        """Close probe *seq* and return the time elapsed since it was sent.

        Args:
            seq: Sequence number carried by the reply.
            now: Receive time, in the unit used by :meth:`record_send`.

        Returns:
            ``now`` minus the recorded send time, or ``None`` if the probe
            is outside the live window or was already answered.
        """
        if self.current_seq is None or seq <= self.current_seq - self.size:
            logger.debug("seq=%d is outside the probe window", seq)
            return None
        index = seq % self.size
        sent = self._slots[index]
        if sent is None:
            logger.debug("seq=%d has no probe in flight", seq)
            return None
        self._slots[index] = None
        return now - sent

    def match(self, wire_seq: int) -> int | None:
        """Map a 16-bit sequence number from a reply onto the window.

        Picks the most recent sequence number not after :attr:`current_seq`
        whose low 16 bits equal *wire_seq*.

        Returns:
            The full sequence number, or ``None`` if it is not in the live
            window.
        """
        if self.current_seq is None:
            return None
        distance = (self.current_seq - wire_seq) & WIRE_SEQ_MASK
        if distance >= self.size:
            return None
        return self.current_seq - distance

    def pending(self) -> list[int]:
        """Return the sequence numbers still waiting for a reply, oldest first."""
        if self.current_seq is None:
            return []
        first = max(self.current_seq - self.size + 1, 0)
        return [
            seq
            for seq in range(first, self.current_seq + 1)
            if self._slots[seq % self.size] is not None
        ]
