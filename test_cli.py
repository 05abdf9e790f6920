from click.testing import CliRunner

from campus_monitor.cli import cli
from campus_monitor.services.rooms import SEED_ROOM_IDS


def test_seed_writes_thirty_rooms(store, monkeypatch):
    monkeypatch.setattr("campus_monitor.core.database.init_db", lambda: None)
    monkeypatch.setattr("campus_monitor.services.store.get_store", lambda: store)
    store.set("classrooms/LAB-1", {"occupancyCount": 2})

    result = CliRunner().invoke(cli, ["seed"])
    assert result.exit_code == 0
    data = store.get("classrooms")
    assert set(SEED_ROOM_IDS) < set(data)
    assert data["LAB-1"] == {"occupancyCount": 2}


def test_seed_replace(store, monkeypatch):
    monkeypatch.setattr("campus_monitor.core.database.init_db", lambda: None)
    monkeypatch.setattr("campus_monitor.services.store.get_store", lambda: store)
    store.set("classrooms/LAB-1", {"occupancyCount": 2})

    result = CliRunner().invoke(cli, ["seed", "--replace"])
    assert result.exit_code == 0
    assert sorted(store.get("classrooms")) == sorted(SEED_ROOM_IDS)


def test_seed_failure_exits_non_zero(monkeypatch):
    def unreachable():
        raise RuntimeError("database unreachable")

    monkeypatch.setattr("campus_monitor.core.database.init_db", unreachable)
    result = CliRunner().invoke(cli, ["seed"])
    assert result.exit_code == 1
