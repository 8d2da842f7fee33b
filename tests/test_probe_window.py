import pytest

from probe_window import WINDOW_SIZE, ProbeWindow


def test_default_size():
    assert ProbeWindow().size == WINDOW_SIZE == 5


def test_invalid_size():
    with pytest.raises(ValueError):
        ProbeWindow(0)


def test_ten_unanswered_probes_time_out_oldest_five():
    window = ProbeWindow()
    reported = {}
    for seq in range(10):
        timed_out = window.record_send(seq, float(seq * 1000))
        if timed_out is not None:
            reported[seq] = timed_out
    assert reported == {5: 0, 6: 1, 7: 2, 8: 3, 9: 4}
    assert window.pending() == [5, 6, 7, 8, 9]


def test_answered_probe_does_not_time_out():
    window = ProbeWindow()
    window.record_send(0, 0.0)
    assert window.resolve(0, 10.0) == 10.0
    for seq in range(1, 5):
        window.record_send(seq, float(seq))
    assert window.record_send(5, 5.0) is None


def test_resolve_clears_slot_and_rejects_duplicate():
    window = ProbeWindow()
    window.record_send(3, 0.0)
    assert window.resolve(3, 42.0) == pytest.approx(42.0)
    assert window.pending() == []
    assert window.resolve(3, 50.0) is None


def test_resolve_before_any_send():
    assert ProbeWindow().resolve(0, 1.0) is None


@pytest.mark.parametrize("current", [5, 6, 9])
def test_stale_reply_does_not_touch_reused_slot(current):
    window = ProbeWindow()
    for seq in range(current + 1):
        window.record_send(seq, float(seq))
    before = window.pending()
    assert window.resolve(0, 100.0) is None
    assert window.pending() == before


def test_resolve_oldest_live_probe():
    window = ProbeWindow()
    for seq in range(10, 15):
        window.record_send(seq, float(seq))
    assert window.resolve(10, 20.0) == 10.0


def test_match_recent_sequences():
    window = ProbeWindow()
    assert window.match(0) is None
    for seq in range(1, 8):
        window.record_send(seq, 0.0)
    assert window.match(7) == 7
    assert window.match(3) == 3
    assert window.match(2) is None
    assert window.match(8) is None


def test_match_across_16_bit_wrap():
    window = ProbeWindow()
    for seq in range(65533, 65539):
        window.record_send(seq, float(seq))
    assert window.match(65535) == 65535
    assert window.match(0) == 65536
    assert window.match(2) == 65538
    assert window.match(65533) is None
    assert window.resolve(window.match(0), 70000.0) == 70000.0 - 65536
