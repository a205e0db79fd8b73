import asyncio
import json
import threading
import time
from datetime import datetime

import pytest

from config import CURRENT_VERSION
from domain.dates import REFERENCE_TZ, first_of_month, to_iso
from domain.entries import FixedEntry, VariableEntry
from domain.errors import CorruptStateError, LockTimeout, StorageWriteFailure
from domain.money import Money
from infrastructure.lock import AdvisoryLock
from infrastructure.state_store import AppStateStore
from infrastructure.storage_keys import KeyedStorage, StorageKey
from storage import JsonFileStorage, MemoryStorage

NOW = datetime(2025, 10, 15, 12, 0, tzinfo=REFERENCE_TZ)
OCTOBER_ANCHOR = "2025-09-30T22:00:00.000Z"
SEPTEMBER_ANCHOR = "2025-08-31T22:00:00.000Z"


def _store(backend=None, **kwargs) -> AppStateStore:
    kwargs.setdefault("clock", lambda: NOW)
    kwargs.setdefault("dev_mode", False)
    return AppStateStore(backend if backend is not None else MemoryStorage(), **kwargs)


def _write_document(backend, document: dict) -> None:
    backend.set_item(StorageKey.APP_STATE.full_key, json.dumps(document))


def _v2_document(**overrides) -> dict:
    document = {
        "version": 2,
        "fixedEntries": [
            {
                "id": "rent",
                "type": "expense",
                "categoryId": "bolig",
                "legacyAmountMinor": 850000,
                "money": {"amount": 850000, "currency": "DKK"},
            }
        ],
        "variableEntries": [
            {
                "id": "lunch",
                "type": "expense",
                "categoryId": "mad",
                "legacyAmountMinor": 8950,
                "money": {"amount": 8950, "currency": "DKK"},
                "timestamp": 1_760_000_000_000,
            }
        ],
        "categories": [{"id": "mad", "icon": "x", "displayNameKey": "categories.mad"}],
        "lastResetTimestamp": OCTOBER_ANCHOR,
        "defaultCurrency": "DKK",
    }
    document.update(overrides)
    return document


def _append_fixed(note: str):
    def mutate(state):
        observed = len(state.fixed_entries)
        state.fixed_entries.append(
            FixedEntry(type="expense", category_id="andet", money=Money(100), note=note)
        )
        return observed

    return mutate


class TestInitialization:
    def test_empty_store_is_initialized(self):
        backend = MemoryStorage()
        store = _store(backend)
        assert store.load() is None

        state = store.load_initialized()

        assert state.version == CURRENT_VERSION
        assert state.fixed_entries == []
        assert state.variable_entries == []
        assert state.last_reset_timestamp == first_of_month(NOW) == OCTOBER_ANCHOR
        assert state.default_currency == "DKK"
        assert [c.id for c in state.categories][:2] == ["lon", "bolig"]

        raw = store.load()
        assert raw["version"] == CURRENT_VERSION
        assert raw["lastResetTimestamp"] == OCTOBER_ANCHOR

    def test_initialization_sets_companion_keys(self):
        store = _store()
        assert store.should_show_onboarding()
        store.load_initialized()
        assert store.keys.get(StorageKey.SEED_APPLIED) == "true"
        assert store.last_opened() == to_iso(NOW)
        assert not store.should_show_onboarding()

    def test_dev_mode_seeds_mock_data(self):
        state = _store(dev_mode=True).load_initialized()
        assert len(state.fixed_entries) == 7
        assert 35 <= len(state.variable_entries) <= 45

    def test_dev_mode_from_stored_flag(self, monkeypatch):
        monkeypatch.delenv("BUDGETO_DEV_MODE", raising=False)
        store = AppStateStore(MemoryStorage(), clock=lambda: NOW)
        assert not store.is_dev_mode()
        store.set_dev_mode(True)
        assert store.is_dev_mode()

    def test_dev_mode_from_environment(self, monkeypatch):
        monkeypatch.setenv("BUDGETO_DEV_MODE", "1")
        assert AppStateStore(MemoryStorage()).is_dev_mode()

    def test_second_load_does_not_rewrite(self):
        backend = MemoryStorage()
        store = _store(backend)
        store.load_initialized()
        before = backend.get_item(StorageKey.APP_STATE.full_key)
        store.load_initialized()
        assert backend.get_item(StorageKey.APP_STATE.full_key) == before


class TestMigrationOnLoad:
    def test_v1_document_is_migrated(self):
        backend = MemoryStorage()
        _write_document(
            backend,
            {
                "version": 1,
                "fixedEntries": [
                    {"id": "rent", "type": "expense", "categoryId": "bolig", "legacyAmountMinor": 850000}
                ],
                "variableEntries": [
                    {
                        "id": "lunch",
                        "type": "expense",
                        "categoryId": "mad",
                        "legacyAmountMinor": 8950,
                        "timestamp": 1_760_000_000_000,
                    }
                ],
                "categories": [{"id": "mad", "icon": "x"}],
                "lastResetTimestamp": OCTOBER_ANCHOR,
            },
        )
        store = _store(backend)

        assert store.load()["version"] == 1
        state = store.load_initialized()

        assert state.version == 2
        assert state.default_currency == "DKK"
        for entry in state.all_entries():
            assert entry.money == Money(entry.legacy_amount_minor, "DKK")
        assert state.categories[0].display_name_key == "categories.mad"

        raw = store.load()
        assert raw["version"] == 2
        assert raw["defaultCurrency"] == "DKK"
        for key in ("fixedEntries", "variableEntries"):
            for entry in raw[key]:
                assert entry["money"] == {"amount": entry["legacyAmountMinor"], "currency": "DKK"}

    def test_missing_categories_are_seeded(self):
        backend = MemoryStorage()
        document = _v2_document()
        del document["categories"]
        _write_document(backend, document)
        state = _store(backend).load_initialized()
        assert len(state.categories) == 8

    def test_entry_with_only_legacy_amount_is_kept(self):
        backend = MemoryStorage()
        document = _v2_document()
        document["fixedEntries"] = [
            {"id": "rent", "type": "expense", "categoryId": "bolig", "legacyAmountMinor": 850000}
        ]
        _write_document(backend, document)
        store = _store(backend)

        state = store.load_initialized()
        assert len(state.fixed_entries) == 1
        assert state.fixed_entries[0].money == Money(850000, "DKK")

        store.with_lock(lambda s: None)
        saved = store.load()["fixedEntries"]
        assert saved[0]["money"] == {"amount": 850000, "currency": "DKK"}

    @pytest.mark.parametrize(
        "broken",
        [
            {"id": "broken", "type": "gift", "money": {"amount": 1}},
            {"id": "nomoney", "type": "expense", "categoryId": "andet"},
            "not-an-object",
        ],
    )
    def test_malformed_entry_raises_and_is_not_erased(self, broken):
        backend = MemoryStorage()
        document = _v2_document()
        document["fixedEntries"].append(broken)
        _write_document(backend, document)
        before = backend.get_item(StorageKey.APP_STATE.full_key)
        store = _store(backend)

        with pytest.raises(CorruptStateError, match="fixed entry at index 1"):
            store.load_initialized()
        with pytest.raises(CorruptStateError):
            store.with_lock(lambda s: None)
        assert backend.get_item(StorageKey.APP_STATE.full_key) == before

    def test_corrupt_document_raises(self):
        backend = MemoryStorage({StorageKey.APP_STATE.full_key: "{oops"})
        store = _store(backend)
        with pytest.raises(CorruptStateError):
            store.load()
        with pytest.raises(CorruptStateError):
            store.load_initialized()

    def test_non_object_document_raises(self):
        backend = MemoryStorage({StorageKey.APP_STATE.full_key: "[1, 2]"})
        with pytest.raises(CorruptStateError, match="not a JSON object"):
            _store(backend).load()


class TestRollover:
    def test_new_month_clears_variable_entries_only(self):
        backend = MemoryStorage()
        _write_document(backend, _v2_document(lastResetTimestamp=SEPTEMBER_ANCHOR))
        state = _store(backend).load_initialized()

        assert state.variable_entries == []
        assert [e.id for e in state.fixed_entries] == ["rent"]
        assert state.last_reset_timestamp == OCTOBER_ANCHOR
        raw = json.loads(backend.get_item(StorageKey.APP_STATE.full_key))
        assert raw["variableEntries"] == []
        assert raw["lastResetTimestamp"] == OCTOBER_ANCHOR

    def test_same_month_keeps_entries(self):
        backend = MemoryStorage()
        _write_document(backend, _v2_document())
        state = _store(backend).load_initialized()
        assert [e.id for e in state.variable_entries] == ["lunch"]

    def test_missing_anchor_is_set_without_clearing(self):
        backend = MemoryStorage()
        _write_document(backend, _v2_document(lastResetTimestamp=None))
        state = _store(backend).load_initialized()
        assert [e.id for e in state.variable_entries] == ["lunch"]
        assert state.last_reset_timestamp == OCTOBER_ANCHOR

    def test_invalid_anchor_is_reanchored(self):
        backend = MemoryStorage()
        _write_document(backend, _v2_document(lastResetTimestamp="yesterday-ish"))
        state = _store(backend).load_initialized()
        assert [e.id for e in state.variable_entries] == ["lunch"]
        assert state.last_reset_timestamp == OCTOBER_ANCHOR

    def test_rollover_happens_inside_with_lock(self):
        backend = MemoryStorage()
        _write_document(backend, _v2_document(lastResetTimestamp=SEPTEMBER_ANCHOR))
        count = _store(backend).with_lock(lambda state: len(state.variable_entries))
        assert count == 0


class TestWithLock:
    def test_mutation_is_persisted_and_lock_released(self):
        backend = MemoryStorage()
        store = _store(backend)
        store.with_lock(_append_fixed("first"))

        assert [e.note for e in store.load_initialized().fixed_entries] == ["first"]
        assert store.keys.get(StorageKey.LOCK) is None

    def test_failed_mutation_is_not_saved(self):
        backend = MemoryStorage()
        store = _store(backend)
        store.load_initialized()

        def broken(state):
            state.fixed_entries.append(
                FixedEntry(type="expense", category_id="andet", money=Money(1))
            )
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            store.with_lock(broken)
        assert store.load_initialized().fixed_entries == []
        assert store.keys.get(StorageKey.LOCK) is None

    def test_not_reentrant(self):
        store = _store()
        with pytest.raises(RuntimeError, match="not reentrant"):
            store.with_lock(lambda state: store.with_lock(lambda inner: None))
        assert store.keys.get(StorageKey.LOCK) is None

    def test_concurrent_threads_do_not_interleave(self):
        store = _store()
        observed: list[int] = []
        errors: list[BaseException] = []

        def worker(index: int):
            def mutate(state):
                count = len(state.fixed_entries)
                time.sleep(0.005)
                state.fixed_entries.append(
                    FixedEntry(type="expense", category_id="andet", money=Money(index + 1))
                )
                return count

            try:
                observed.append(store.with_lock(mutate))
            except BaseException as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert sorted(observed) == [0, 1, 2, 3, 4]
        assert len(store.load_initialized().fixed_entries) == 5

    def test_second_caller_sees_first_result(self):
        backend = MemoryStorage()
        first = _store(backend)
        second = _store(backend)
        assert first.with_lock(_append_fixed("a")) == 0
        assert second.with_lock(_append_fixed("b")) == 1

    def test_other_instance_holding_lock_times_out(self):
        backend = MemoryStorage()
        holder = _store(backend)
        waiter = _store(
            backend,
            lock=AdvisoryLock(KeyedStorage(backend), sleep=lambda seconds: None),
        )

        def mutate_while_holding(state):
            with pytest.raises(LockTimeout):
                waiter.with_lock(_append_fixed("blocked"))
            return "held"

        assert holder.with_lock(mutate_while_holding) == "held"
        assert holder.load_initialized().fixed_entries == []

    def test_write_failure_propagates(self):
        store = _store(MemoryStorage(quota_chars=50))
        with pytest.raises(StorageWriteFailure):
            store.with_lock(_append_fixed("too big"))

    def test_json_backend(self, tmp_path):
        path = str(tmp_path / "budgeto.json")
        _store(JsonFileStorage(path)).with_lock(_append_fixed("persisted"))
        state = _store(JsonFileStorage(path)).load_initialized()
        assert [e.note for e in state.fixed_entries] == ["persisted"]


class TestAsyncWithLock:
    def test_gathered_mutations_are_serialized(self):
        store = _store()

        async def append(note: str):
            async def mutate(state):
                count = len(state.variable_entries)
                await asyncio.sleep(0.001)
                state.variable_entries.append(
                    VariableEntry(
                        type="expense",
                        category_id="mad",
                        money=Money(100),
                        note=note,
                        timestamp=1_760_500_000_000,
                    )
                )
                return count

            return await store.async_with_lock(mutate)

        async def scenario():
            return await asyncio.gather(append("a"), append("b"), append("c"))

        results = asyncio.run(scenario())
        assert sorted(results) == [0, 1, 2]
        assert len(store.load_initialized().variable_entries) == 3

    def test_sync_mutator_is_accepted(self):
        store = _store()
        result = asyncio.run(store.async_with_lock(lambda state: state.default_currency))
        assert result == "DKK"

    def test_nested_call_raises_instead_of_blocking(self):
        store = _store()

        async def mutate(state):
            with pytest.raises(RuntimeError, match="not reentrant"):
                await store.async_with_lock(lambda inner: None)
            return "outer"

        assert asyncio.run(store.async_with_lock(mutate)) == "outer"
        assert asyncio.run(store.async_with_lock(lambda state: state.version)) == CURRENT_VERSION



class TestReset:
    def test_reset_removes_everything(self):
        backend = MemoryStorage({"unrelated": "keep"})
        store = _store(backend)
        store.load_initialized()
        store.keys.set(StorageKey.THEME, "dark")
        store.keys.set(StorageKey.LOCALE, "en")
        backend.set_item("budgeto.somethingElse", "1")

        store.reset_all_data()

        assert store.load() is None
        assert store.keys.get(StorageKey.THEME) is None
        assert store.keys.get(StorageKey.LOCALE) is None
        assert store.should_show_onboarding()
        assert backend.keys() == ["unrelated"]

    def test_reset_then_load_reinitializes(self):
        store = _store()
        store.with_lock(_append_fixed("gone"))
        store.reset_all_data()
        assert store.load_initialized().fixed_entries == []
