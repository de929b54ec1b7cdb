import pytest

from proxy_dashboard.metrics.window import PLACEHOLDER, SlidingWindow, TimePoint


def test_window_starts_full_of_placeholders():
    window = SlidingWindow(capacity=60)

    assert len(window) == 60
    assert all(point == PLACEHOLDER for point in window)
    assert window.as_pairs()[0] == [0, 0.0]


def test_push_keeps_length_and_last_points():
    window = SlidingWindow(capacity=3)
    for i in range(1, 6):
        window.push(TimePoint(i * 1000, float(i)))
        assert len(window) == 3

    assert [p.value for p in window.points()] == [3.0, 4.0, 5.0]
    assert window.latest == TimePoint(5000, 5.0)


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        SlidingWindow(capacity=0)


def test_partial_fill_keeps_placeholders_in_front():
    window = SlidingWindow(capacity=5)
    pushed = [TimePoint(1000, 1.0), TimePoint(2000, 2.0)]
    for point in pushed:
        window.push(point)

    assert len(window) == 5
    assert window.points() == [PLACEHOLDER, PLACEHOLDER, PLACEHOLDER, *pushed]
    assert window.as_pairs()[-2:] == [[1000, 1.0], [2000, 2.0]]
