"""Zone transitions: gated zone entry, banked time, transit usage."""
from keytracker.models.events import EventType
from keytracker.models.items import SHINY_RAKAZNAR_PLATE
from keytracker.systems.event_bus import EventBus
from keytracker.systems.zone_tracker import ZoneTransitionDetector

T2 = 2_000_000


class TestZoneTransitionDetector:
    def test_duplicate_zone_ignored(self, store):
        detector = ZoneTransitionDetector(store)
        assert detector.observe(230, T2)
        assert detector.observe(230, T2 + 5) == []
        assert detector.current_zone == 230
        assert detector.previous_zone is None

    def test_publishes_zone_id(self, store):
        bus = EventBus()
        seen = []
        bus.subscribe(seen.append)
        detector = ZoneTransitionDetector(store, bus)
        detector.observe(100, T2)
        detector.observe(100, T2)
        detector.observe(101, T2)
        assert seen == [100, 101]

    def test_gated_entry_starts_cooldown(self, store):
        store.set_time_bank(20_000, observed_at=10)
        detector = ZoneTransitionDetector(store)
        detector.observe(230, T2 - 60)
        events = detector.observe(294, T2)
        assert store.get_gated_zone() == (T2, T2 + 216_000)
        assert store.get_time_bank() == (20_000, 10)
        assert EventType.GATED_ZONE_ENTERED in [e.event_type for e in events]

    def test_gated_entry_spends_banked_time(self, store):
        store.set_gated_zone(T2 - 211_000, T2 + 5000)
        store.set_time_bank(20_000)
        detector = ZoneTransitionDetector(store)
        detector.observe(230, T2 - 60)
        events = detector.observe(294, T2)
        assert store.get_time_bank() == (15_000, T2)
        assert store.get_gated_zone() == (T2, T2 + 216_000)
        consumed = [e for e in events if e.event_type == EventType.TIME_BANK_CONSUMED]
        assert consumed[0].metadata["consumed"] == 5000

    def test_banked_time_never_negative(self, store):
        store.set_gated_zone(T2 - 100, T2 + 9000)
        store.set_time_bank(3000)
        detector = ZoneTransitionDetector(store)
        detector.observe(243, T2 - 60)
        detector.observe(297, T2)
        assert store.get_time_bank()[0] == 0

    def test_wrong_lobby_is_not_entry(self, store):
        detector = ZoneTransitionDetector(store)
        detector.observe(234, T2 - 60)
        detector.observe(294, T2)
        assert store.get_gated_zone() == (0, 0)

    def test_transit_uses_held_item(self, store):
        store.set_owned(SHINY_RAKAZNAR_PLATE, True)
        detector = ZoneTransitionDetector(store)
        detector.observe(267, T2 - 60)
        events = detector.observe(275, T2)
        assert store.get_timestamp(SHINY_RAKAZNAR_PLATE) == T2
        assert not store.is_owned(SHINY_RAKAZNAR_PLATE)
        used = [e for e in events if e.event_type == EventType.ITEM_USED]
        assert used[0].zone_id == 275

    def test_transit_without_item(self, store):
        detector = ZoneTransitionDetector(store)
        detector.observe(267, T2 - 60)
        detector.observe(133, T2)
        assert store.get_timestamp(SHINY_RAKAZNAR_PLATE) == 0
