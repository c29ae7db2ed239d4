from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import NewAlert
from backend.app.services.alert_store import AlertStore

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _spike(product: str) -> NewAlert:
    return NewAlert(type="demand_spike", severity="warning", title=f"Demand spike: {product}", product_name=product)


@pytest.fixture()
def store(tmp_path: Path, monkeypatch) -> AlertStore:
    monkeypatch.delenv("DATA_DIR", raising=False)
    return AlertStore(data_root=str(tmp_path))


def test_create_assigns_sequential_ids(store: AlertStore) -> None:
    first = store.create(_spike("Insulin"))
    second = store.create(_spike("Saline"))

    assert (first.id, second.id) == (1, 2)
    assert [a.id for a in store.list()] == [2, 1]


def test_read_and_dismiss_filter_listing(store: AlertStore) -> None:
    a = store.create(_spike("Insulin"), created_at=NOW - timedelta(hours=2))
    b = store.create(_spike("Saline"), created_at=NOW - timedelta(hours=1))
    c = store.create(_spike("Heparin"), created_at=NOW)

    store.mark_read(a.id)
    store.dismiss(b.id)

    assert [x.id for x in store.list()] == [c.id, a.id]
    assert [x.id for x in store.list(unread_only=True)] == [c.id]


def test_unknown_id_raises_key_error(store: AlertStore) -> None:
    with pytest.raises(KeyError):
        store.mark_read(99)


def test_has_recent_respects_window_type_and_product(store: AlertStore) -> None:
    store.create(_spike("Insulin"), created_at=NOW - timedelta(days=3))
    store.create(_spike("Saline"), created_at=NOW - timedelta(days=10))

    assert store.has_recent("demand_spike", "Insulin", 7, now=NOW) is True
    assert store.has_recent("demand_spike", "Saline", 7, now=NOW) is False
    assert store.has_recent("price_change", "Insulin", 7, now=NOW) is False
    assert store.has_recent("demand_spike", "Heparin", 7, now=NOW) is False


def test_listing_caps_at_fifty(store: AlertStore) -> None:
    for idx in range(55):
        store.create(_spike(f"P{idx}"), created_at=NOW + timedelta(minutes=idx))

    listed = store.list()

    assert len(listed) == 50
    assert listed[0].product_name == "P54"


def test_naive_timestamps_are_treated_as_utc(store: AlertStore) -> None:
    created = store.create(_spike("Insulin"), created_at=datetime(2025, 1, 13, 12, 0))

    assert created.created_at.tzinfo is not None
    assert store.has_recent("demand_spike", "Insulin", 7, now=NOW) is True
    assert store.has_recent("demand_spike", "Insulin", 7, now=datetime(2025, 1, 30)) is False
