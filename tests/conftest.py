"""
Pytest configuration and fixtures for MMA importer tests.

Store doubles keep everything in memory so the import pipeline can be tested
without a database; the SQL stores have their own SQLite-backed tests.
"""
import os
import threading

# Tests never bootstrap Postgres; the SQL stores are exercised against SQLite.
os.environ.setdefault("SKIP_DB_INIT", "1")

import pytest

from mma_importer.domain.imports.models import CommitMode, ExistingFight, ExistingFighter


class InMemoryFighterStore:
    def __init__(self, fighters=None):
        self.fighters = list(fighters or [])
        self.calls = []
        self.fail_modes = set()

    def list(self):
        return [
            f if isinstance(f, ExistingFighter)
            else ExistingFighter(id=f.id, first_name=f.first_name, last_name=f.last_name)
            for f in self.fighters
        ]

    def add_many(self, records, mode=CommitMode.ADD):
        mode = CommitMode(mode)
        self.calls.append((mode, list(records)))
        if mode in self.fail_modes:
            raise RuntimeError(f"fighter store rejected {mode.value} batch")
        if mode == CommitMode.REPLACE:
            replaced_ids = {r.id for r in records}
            self.fighters = [f for f in self.fighters if f.id not in replaced_ids]
        self.fighters.extend(records)


class BlockingFighterStore(InMemoryFighterStore):
    """Holds ``add_many`` open until ``release`` is set, so a commit can be observed mid-flight."""

    def __init__(self, fighters=None):
        super().__init__(fighters)
        self.entered = threading.Event()
        self.release = threading.Event()

    def add_many(self, records, mode=CommitMode.ADD):
        self.entered.set()
        self.release.wait(timeout=5)
        super().add_many(records, mode)


class InMemoryFightStore:
    def __init__(self, fights=None):
        self.fights = list(fights or [])
        self.calls = []
        self.fail_modes = set()

    def list(self):
        return [
            f if isinstance(f, ExistingFight)
            else ExistingFight(id=f.id, event_date=f.event_date, opponent_name=f.opponent_name, fighter_id=f.fighter_id)
            for f in self.fights
        ]

    def add_many(self, records, mode=CommitMode.ADD):
        mode = CommitMode(mode)
        self.calls.append((mode, list(records)))
        if mode in self.fail_modes:
            raise RuntimeError(f"fight store rejected {mode.value} batch")
        if mode == CommitMode.REPLACE:
            replaced_ids = {r.id for r in records}
            self.fights = [f for f in self.fights if f.id not in replaced_ids]
        self.fights.extend(records)


@pytest.fixture
def existing_fighters():
    return [
        ExistingFighter(id="jon-jones", first_name="Jon", last_name="Jones"),
        ExistingFighter(id="daniel-cormier", first_name="Daniel", last_name="Cormier"),
        ExistingFighter(id="stipe-miocic", first_name="Stipe", last_name="Miocic"),
    ]


@pytest.fixture
def existing_fights():
    return [
        ExistingFight(id="fight-jj-dc-2", event_date="2017-07-29", opponent_name="Daniel Cormier", fighter_id="jon-jones"),
    ]


@pytest.fixture
def fighter_store(existing_fighters):
    return InMemoryFighterStore(existing_fighters)


@pytest.fixture
def fight_store(existing_fights):
    return InMemoryFightStore(existing_fights)


@pytest.fixture
def empty_fighter_store():
    return InMemoryFighterStore()


@pytest.fixture
def empty_fight_store():
    return InMemoryFightStore()


@pytest.fixture
def blocking_fighter_store(existing_fighters):
    store = BlockingFighterStore(existing_fighters)
    yield store
    store.release.set()
