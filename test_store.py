import logging

import pytest

from campus_monitor.services.store import Snapshot, split_path


def test_split_path():
    assert split_path("classrooms") == ("classrooms", None)
    assert split_path("classrooms/A101") == ("classrooms", "A101")
    for bad in ("", "classrooms/", "/classrooms/A101/", "/", "classrooms/A101/extra", "classrooms//A101", "classrooms/A.101", "classrooms/A#1"):
        with pytest.raises(ValueError):
            split_path(bad)


def test_get_missing_returns_none(store):
    assert store.get("classrooms/A101") is None
    assert store.get("classrooms") is None


def test_set_get_and_remove_record(store):
    store.set("classrooms/A101", {"occupancyCount": 2, "currentStatus": "occupied"})
    assert store.get("classrooms/A101") == {"occupancyCount": 2, "currentStatus": "occupied"}
    assert store.get("classrooms") == {"A101": {"occupancyCount": 2, "currentStatus": "occupied"}}

    store.remove("classrooms/A101")
    assert store.get("classrooms/A101") is None
    assert store.get("classrooms") is None


def test_set_overwrites_whole_record(store):
    store.set("classrooms/A101", {"occupancyCount": 2, "subject": "Physics"})
    store.set("classrooms/A101", {"occupancyCount": 0})
    assert store.get("classrooms/A101") == {"occupancyCount": 0}


def test_set_collection_replaces_all_children(store):
    store.set("classrooms/OLD", {"occupancyCount": 1})
    store.set("classrooms", {"A101": {"occupancyCount": 0}, "A102": {"occupancyCount": 3}})
    assert store.get("classrooms") == {"A101": {"occupancyCount": 0}, "A102": {"occupancyCount": 3}}


def test_update_merges_fields_and_creates_missing(store):
    store.set("classrooms/A101", {"occupancyCount": 2, "currentStatus": "occupied", "subject": "-"})
    result = store.update("classrooms/A101", {"subject": "Math"})
    assert result == {"occupancyCount": 2, "currentStatus": "occupied", "subject": "Math"}

    store.update("classrooms/B1", {"nextClass": "faculty_coming"})
    assert store.get("classrooms/B1") == {"nextClass": "faculty_coming"}


def test_update_none_removes_field(store):
    store.set("classrooms/A101", {"occupancyCount": 2, "subject": "Math"})
    store.update("classrooms/A101", {"subject": None})
    assert store.get("classrooms/A101") == {"occupancyCount": 2}


def test_update_collection_only_touches_listed_children(store):
    store.set("classrooms/KEEP", {"occupancyCount": 5})
    store.set("classrooms/A101", {"occupancyCount": 5, "subject": "Math"})
    store.update("classrooms", {"A101": {"occupancyCount": 0}})
    assert store.get("classrooms") == {"A101": {"occupancyCount": 0}, "KEEP": {"occupancyCount": 5}}


def test_transaction_reads_and_writes_under_lock(store):
    store.set("classrooms/A101", {"occupancyCount": 1})
    result = store.transaction("classrooms/A101", lambda cur: {**cur, "occupancyCount": cur["occupancyCount"] + 1})
    assert result == {"occupancyCount": 2}
    assert store.get("classrooms/A101") == {"occupancyCount": 2}


def test_transaction_abort_and_error_write_nothing(store):
    store.set("classrooms/A101", {"occupancyCount": 1})
    assert store.transaction("classrooms/A101", lambda cur: None) is None

    def boom(cur):
        raise LookupError("gone")

    with pytest.raises(LookupError):
        store.transaction("classrooms/A101", boom)
    assert store.get("classrooms/A101") == {"occupancyCount": 1}

    with pytest.raises(ValueError):
        store.transaction("classrooms", lambda cur: cur)


def test_subscribe_delivers_current_snapshot_immediately(store):
    store.set("classrooms/A101", {"occupancyCount": 4})
    seen = []
    sub = store.subscribe("classrooms/A101", seen.append)
    assert seen == [Snapshot("classrooms/A101", {"occupancyCount": 4})]
    assert seen[0].key == "A101"
    assert seen[0].exists()
    sub.cancel()


def test_subscriptions_receive_overlapping_writes_only(store):
    collection, a101, a102 = [], [], []
    subs = [
        store.subscribe("classrooms", collection.append),
        store.subscribe("classrooms/A101", a101.append),
        store.subscribe("classrooms/A102", a102.append),
    ]
    store.set("classrooms/A101", {"occupancyCount": 1})

    assert len(collection) == 2 and collection[-1].value == {"A101": {"occupancyCount": 1}}
    assert len(a101) == 2 and a101[-1].value == {"occupancyCount": 1}
    assert len(a102) == 1

    # A collection-level write reaches every record subscriber
    store.set("classrooms", {"A102": {"occupancyCount": 7}})
    assert a101[-1].value is None
    assert a102[-1].value == {"occupancyCount": 7}

    for sub in subs:
        sub.cancel()


def test_cancel_stops_delivery_and_is_idempotent(store):
    seen = []
    sub = store.subscribe("classrooms/A101", seen.append)
    assert store.subscription_count == 1
    sub.cancel()
    sub.cancel()
    assert store.subscription_count == 0
    store.set("classrooms/A101", {"occupancyCount": 1})
    assert len(seen) == 1


def test_subscription_context_manager(store):
    seen = []
    with store.subscribe("classrooms", seen.append):
        store.set("classrooms/A101", {})
    store.set("classrooms/A102", {})
    assert len(seen) == 2
    assert store.subscription_count == 0


def test_failing_subscriber_does_not_block_others(store, caplog):
    def broken(snapshot):
        if snapshot.exists():
            raise RuntimeError("render failed")

    seen = []
    store.subscribe("classrooms/A101", broken)
    store.subscribe("classrooms/A101", seen.append)
    with caplog.at_level(logging.ERROR):
        store.set("classrooms/A101", {"occupancyCount": 1})
    assert seen[-1].value == {"occupancyCount": 1}
    assert "Subscriber callback failed" in caplog.text
