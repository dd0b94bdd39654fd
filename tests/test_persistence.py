"""State files: guard, tolerant loading, legacy migration."""
import json

import pytest

from keytracker.models.items import MOGLOPHONE, MYSTICAL_CANTEEN, SHINY_RAKAZNAR_PLATE
from keytracker.models.state import CooldownState
from keytracker.systems.persistence import (
    PersistenceGuard,
    StateFileError,
    StateRepository,
    coerce_state,
    loads_state,
    state_filename,
)


class TestPersistenceGuard:
    def setup_method(self):
        self.guard = PersistenceGuard()

    def test_empty_state_after_load_is_refused(self):
        assert self.guard.should_save(CooldownState(), True) is False

    def test_empty_state_before_load_is_allowed(self):
        assert self.guard.should_save(CooldownState(), False) is True

    def test_meaningful_state_is_saved(self):
        assert self.guard.should_save(CooldownState(timestamps={MOGLOPHONE: 10}), True)
        assert self.guard.should_save(CooldownState(owned={MOGLOPHONE: True}), True)

    def test_malformed_state_is_refused(self):
        assert self.guard.should_save(object(), False) is False

    def test_released_items_and_storage_are_not_meaningful(self):
        state = CooldownState(timestamps={MOGLOPHONE: 0}, owned={MOGLOPHONE: False}, storage_count=2)
        assert state.has_meaningful_data() is False
        assert self.guard.should_save(state, True) is False


def test_state_filename():
    assert state_filename(42) == "keytracker_state_42.json"
    assert state_filename(None) == "keytracker_state.json"
    assert state_filename(0) == "keytracker_state.json"


class TestCoerceState:
    def test_partial_table_merged_with_defaults(self):
        state = coerce_state({"timestamps": {"3212": 500}})
        assert state.timestamps == {3212: 500}
        assert state.storage_count == 0
        assert state.time_bank_value == 0

    def test_invalid_values_become_zero(self):
        state = coerce_state({"storage_timer": -5, "time_bank_value": "lots", "storage_count": 9})
        assert state.storage_timer == 0
        assert state.time_bank_value == 0
        assert state.storage_count == 3

    def test_ready_time_migrated(self):
        state = coerce_state({"gated_zone_entry_time": 1000})
        assert state.gated_zone_ready_time == 217_000

    def test_legacy_field_names(self):
        state = coerce_state({
            "hourglass_time": 300,
            "dynamis_d_entry_time": 50,
            "dynamis_projected_ready_time": 9000,
            "storage_canteens": 2,
            "owned": {"3212": "true", "3300": False},
        })
        assert state.time_bank_value == 300
        assert (state.gated_zone_entry_time, state.gated_zone_ready_time) == (50, 9000)
        assert state.storage_count == 2
        assert state.owned == {3212: True, 3300: False}

    def test_non_table_rejected(self):
        with pytest.raises(StateFileError):
            coerce_state([1, 2])


def test_loads_state_accepts_envelope_and_bare_table():
    bare = loads_state(json.dumps({"time_bank_value": 10}))
    wrapped = loads_state(json.dumps({"version": 1, "state": {"time_bank_value": 10}}))
    assert bare == wrapped


class TestStateRepository:
    def test_round_trip(self, tmp_path):
        repo = StateRepository(tmp_path)
        state = CooldownState(
            timestamps={MOGLOPHONE: 1000, MYSTICAL_CANTEEN: 0, SHINY_RAKAZNAR_PLATE: 4500},
            owned={MOGLOPHONE: True, MYSTICAL_CANTEEN: False, SHINY_RAKAZNAR_PLATE: False},
            storage_count=2,
            storage_timer=3000,
            gated_zone_entry_time=6000,
            gated_zone_ready_time=222_000,
            time_bank_value=7200,
            time_bank_observed_at=6500,
        )
        assert repo.save(state, 7)
        assert repo.path_for(7).exists()
        assert repo.load(7) == state

    def test_missing_file_gives_default(self, tmp_path):
        assert StateRepository(tmp_path).load(7) == CooldownState()

    def test_corrupt_file_gives_default(self, tmp_path):
        repo = StateRepository(tmp_path)
        repo.path_for(7).write_text("{not json", encoding="utf-8")
        assert repo.load(7) == CooldownState()

    def test_deeply_nested_file_gives_default(self, tmp_path):
        repo = StateRepository(tmp_path)
        repo.path_for(7).write_text("[" * 100_000, encoding="utf-8")
        assert repo.load(7) == CooldownState()

    def test_oversized_number_does_not_raise(self, tmp_path):
        repo = StateRepository(tmp_path)
        repo.path_for(7).write_text('{"storage_count": ' + "9" * 5000 + "}", encoding="utf-8")
        state = repo.load(7)
        assert state.storage_count in (0, 3)
        assert state.timestamps == {}

    def test_unreadable_content_is_a_state_file_error(self):
        with pytest.raises(StateFileError):
            loads_state("[" * 100_000)

    def test_identities_are_separate(self, tmp_path):
        repo = StateRepository(tmp_path)
        repo.save(CooldownState(timestamps={MOGLOPHONE: 1}), 1)
        assert repo.load(2) == CooldownState()
