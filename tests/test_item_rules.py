"""Per-policy ownership rules."""
from keytracker.models.events import EventType
from keytracker.models.items import MOGLOPHONE, MYSTICAL_CANTEEN, SHINY_RAKAZNAR_PLATE
from keytracker.systems import item_rules
from keytracker.systems.item_rules import OwnershipChange


def test_ownership_change():
    assert item_rules.ownership_change(False, True) == OwnershipChange.ACQUIRED
    assert item_rules.ownership_change(True, False) == OwnershipChange.LOST
    assert item_rules.ownership_change(True, True) is None


class TestTimestampOnAcquire:
    def test_acquire_starts_cooldown(self, catalog, store):
        events = item_rules.apply(catalog.get(MOGLOPHONE), OwnershipChange.ACQUIRED, store, 1000)
        assert store.get_timestamp(MOGLOPHONE) == 1000
        assert store.is_owned(MOGLOPHONE)
        assert EventType.COOLDOWN_STARTED in [e.event_type for e in events]
        assert store.is_available(MOGLOPHONE, 73_001)

    def test_reacquire_keeps_timestamp(self, catalog, store):
        store.set_timestamp(MOGLOPHONE, 500)
        item_rules.apply(catalog.get(MOGLOPHONE), OwnershipChange.ACQUIRED, store, 2000)
        assert store.get_timestamp(MOGLOPHONE) == 500
        assert store.is_owned(MOGLOPHONE)

    def test_loss_keeps_timestamp(self, catalog, store):
        item = catalog.get(MOGLOPHONE)
        item_rules.apply(item, OwnershipChange.ACQUIRED, store, 1000)
        item_rules.apply(item, OwnershipChange.LOST, store, 5000)
        assert store.get_timestamp(MOGLOPHONE) == 1000
        assert not store.is_owned(MOGLOPHONE)


class TestNoTimestampUntilUsed:
    def test_acquire_does_not_start_cooldown(self, catalog, store):
        item_rules.apply(catalog.get(SHINY_RAKAZNAR_PLATE), OwnershipChange.ACQUIRED, store, 1000)
        assert store.is_owned(SHINY_RAKAZNAR_PLATE)
        assert store.get_timestamp(SHINY_RAKAZNAR_PLATE) == 0

    def test_loss_starts_cooldown(self, catalog, store):
        item = catalog.get(SHINY_RAKAZNAR_PLATE)
        item_rules.apply(item, OwnershipChange.ACQUIRED, store, 1000)
        item_rules.apply(item, OwnershipChange.LOST, store, 4000)
        assert store.get_timestamp(SHINY_RAKAZNAR_PLATE) == 4000
        assert not store.is_owned(SHINY_RAKAZNAR_PLATE)

    def test_usage_requires_holding(self, catalog, store):
        assert item_rules.apply_usage(catalog.get(SHINY_RAKAZNAR_PLATE), store, 1000) == []
        assert store.get_timestamp(SHINY_RAKAZNAR_PLATE) == 0

    def test_usage_consumes_item(self, catalog, store):
        store.set_owned(SHINY_RAKAZNAR_PLATE, True)
        events = item_rules.apply_usage(catalog.get(SHINY_RAKAZNAR_PLATE), store, 1000)
        assert [e.event_type for e in events] == [EventType.ITEM_USED]
        assert store.get_timestamp(SHINY_RAKAZNAR_PLATE) == 1000
        assert not store.is_owned(SHINY_RAKAZNAR_PLATE)


def test_storage_counted_only_tracks_held_flag(catalog, store):
    item = catalog.get(MYSTICAL_CANTEEN)
    item_rules.apply(item, OwnershipChange.ACQUIRED, store, 1000)
    assert store.is_owned(MYSTICAL_CANTEEN)
    assert store.get_timestamp(MYSTICAL_CANTEEN) == 0
    item_rules.apply(item, OwnershipChange.LOST, store, 2000)
    assert not store.is_owned(MYSTICAL_CANTEEN)
