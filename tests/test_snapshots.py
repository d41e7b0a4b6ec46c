import pytest

from classpoints.services import snapshots
from classpoints.services.change_feed import REDEMPTION, ChangeFeed
from classpoints.services.snapshots import SnapshotCache


@pytest.fixture(name="feed")
def feed_fixture():
    return ChangeFeed()


def test_student_change_drops_only_that_students_views(feed):
    cache = SnapshotCache(feed, ttl=0)
    cache.put_view(1, 10, "totals", "a")
    cache.put_view(2, 10, "totals", "b")
    cache.put_view(1, 20, "totals", "c")
    cache.put_leaderboard(10, "all", ["board"])
    cache.put_leaderboard(20, "all", ["other board"])

    feed.publish(10, student_id=1)

    assert cache.get_view(1, 10, "totals") is None
    assert cache.get_view(2, 10, "totals") == "b"
    assert cache.get_view(1, 20, "totals") == "c"
    assert cache.get_leaderboard(10, "all") is None
    assert cache.get_leaderboard(20, "all") == ["other board"]


def test_class_wide_change_drops_every_view_in_the_class(feed):
    cache = SnapshotCache(feed, ttl=0)
    cache.put_view(1, 10, "streak", "a")
    cache.put_view(2, 10, "streak", "b")
    feed.publish(10, reason=REDEMPTION)
    assert cache.get_view(1, 10, "streak") is None
    assert cache.get_view(2, 10, "streak") is None


def test_entries_expire_after_ttl(monkeypatch):
    now = [100.0]
    monkeypatch.setattr(snapshots.time, "monotonic", lambda: now[0])
    cache = SnapshotCache(ttl=60)
    cache.put_view(1, 10, "totals", "fresh")
    now[0] = 159.0
    assert cache.get_view(1, 10, "totals") == "fresh"
    now[0] = 161.0
    assert cache.get_view(1, 10, "totals") is None


def test_subscribers_receive_change_details(feed):
    seen = []

    def receiver(class_id, student_id=None, reason=None):
        seen.append((class_id, student_id, reason))

    feed.subscribe(receiver)
    feed.publish(3, 4, REDEMPTION)
    feed.unsubscribe(receiver)
    feed.publish(3, 4)
    assert seen == [(3, 4, REDEMPTION)]


def test_value_read_before_an_invalidation_is_not_stored(feed):
    cache = SnapshotCache(feed, ttl=0)
    generation = cache.generation(10)
    feed.publish(10, student_id=1)

    assert not cache.put_view(1, 10, "totals", "stale", generation)
    assert not cache.put_leaderboard(10, "all", ["stale board"], generation)
    assert cache.get_view(1, 10, "totals") is None
    assert cache.get_leaderboard(10, "all") is None

    # Other classes keep their own generation.
    assert cache.put_view(1, 20, "totals", "fine", cache.generation(20))
    assert cache.put_view(1, 10, "totals", "fresh", cache.generation(10))
    assert cache.get_view(1, 10, "totals") == "fresh"
