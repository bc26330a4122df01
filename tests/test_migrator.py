"""
Unit tests for the migrator: merging, partitioning, planning and running
inline migrations against an in-memory ledger.
"""

import logging

import pytest

from surreal_inline import (
    MIGRATE_ZERO,
    Change,
    DuplicateMigrationError,
    EntityRegistry,
    Migrator,
    MigratorOptions,
    UnknownMigrationError,
    UpDown,
    resolve_plan,
)
from surreal_inline.entity import Entity
from surreal_inline.exceptions import IrreversibleMigrationError, QueryError
from surreal_inline.migrations.operations import AddField
from surreal_inline.testing import MemoryExecutor
from surreal_inline.types import Direction

SIMPLE = "20110308_1335_simple"
ANOTHER = "20110711_1623_another"


@pytest.fixture
def thing_migrations(thing: Entity) -> Entity:
    thing.migration(SIMPLE, "A very simple migration.", Change([AddField("things", "age", "number")]))
    thing.migration(ANOTHER, "A later simple migration.", Change([AddField("things", "strength", "number")]))
    return thing


def ledger_rows(executor: MemoryExecutor) -> list[tuple[str, str]]:
    return [(row["name"], row["model_class"]) for row in executor.rows("schema_migrations")]


def seed_ledger(executor: MemoryExecutor, *rows: tuple[str, str]) -> None:
    executor.seed("schema_migrations", [{"name": name, "model_class": owner} for name, owner in rows])


class TestAllMigrations:
    """Tests for merging the migrations of a hierarchy."""

    def test_sorted_across_descendants(self, registry: EntityRegistry, thing_migrations: Entity) -> None:
        gadget = registry.define("Gadget", parent=thing_migrations)
        gadget.migration("20110501_0900_middle", "Between the two", Change())

        migrations = Migrator(registry, thing_migrations, MemoryExecutor()).all_migrations()

        assert [m.name for m in migrations] == [SIMPLE, "20110501_0900_middle", ANOTHER]
        assert [m.entity_name for m in migrations] == ["Thing", "Gadget", "Thing"]

    def test_duplicate_in_hierarchy(self, registry: EntityRegistry, thing_migrations: Entity) -> None:
        gadget = registry.define("Gadget", parent=thing_migrations)
        gadget.migration(SIMPLE, "Same name, different entity", Change())

        with pytest.raises(DuplicateMigrationError, match="found duplicate names") as excinfo:
            Migrator(registry, thing_migrations, MemoryExecutor()).all_migrations()

        assert excinfo.value.name == SIMPLE
        assert "test_migrator.py" in excinfo.value.first_source
        assert "test_migrator.py" in excinfo.value.second_source

    def test_same_name_in_unrelated_hierarchies(self, registry: EntityRegistry, thing_migrations: Entity) -> None:
        widget = registry.define("Widget")
        widget.migration(SIMPLE, "Coincidentally named", Change())

        assert len(Migrator(registry, thing_migrations, MemoryExecutor()).all_migrations()) == 2
        assert len(Migrator(registry, widget, MemoryExecutor()).all_migrations()) == 1

    def test_all_migrating_entities(self, registry: EntityRegistry, model: Entity, thing: Entity) -> None:
        gadget = registry.define("Gadget", parent=thing)
        migrator = Migrator(registry, model, MemoryExecutor())
        assert migrator.all_migrating_entities() == [model, thing, gadget]


class TestPartition:
    """Tests for splitting migrations into applied and pending."""

    async def test_partition_is_complete_and_disjoint(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        seed_ledger(executor, (SIMPLE, "Thing"))

        applied, pending = await Migrator(registry, thing_migrations, executor).get_partitioned_migrations()

        applied_names = {m.name for m in applied}
        pending_names = {m.name for m in pending}
        assert applied_names | pending_names == set(thing_migrations.migrations)
        assert applied_names & pending_names == set()
        assert [m.name for m in applied] == [SIMPLE]
        assert [m.name for m in pending] == [ANOTHER]

    async def test_orphans_are_logged_and_ignored(
        self,
        registry: EntityRegistry,
        thing_migrations: Entity,
        executor: MemoryExecutor,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        seed_ledger(executor, (SIMPLE, "Thing"), ("20140603_1139_add_unique_email_constraint", "Thing"))

        with caplog.at_level(logging.WARNING, logger="surreal_inline"):
            applied, pending = await Migrator(registry, thing_migrations, executor).get_partitioned_migrations()

        assert [m.name for m in applied] == [SIMPLE]
        assert [m.name for m in pending] == [ANOTHER]
        assert "No 20140603_1139_add_unique_email_constraint migration defined in Thing; ignoring it." in caplog.text
        assert len(executor.rows("schema_migrations")) == 2

    async def test_status_reports_orphans(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        seed_ledger(executor, ("20140603_1139_add_unique_email_constraint", "Thing"))

        status = await Migrator(registry, thing_migrations, executor).status()

        assert status.applied == []
        assert [m.name for m in status.pending] == [SIMPLE, ANOTHER]
        assert status.orphaned == {"20140603_1139_add_unique_email_constraint": "Thing"}

    async def test_rows_of_other_entities_ignored(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        seed_ledger(executor, (SIMPLE, "Widget"))

        status = await Migrator(registry, thing_migrations, executor).status()

        assert [m.name for m in status.pending] == [SIMPLE, ANOTHER]
        assert status.orphaned == {}


class TestResolvePlan:
    """Tests for choosing the steps and direction."""

    @pytest.fixture
    def migrations(self, registry: EntityRegistry) -> list:
        thing = registry.define("Thing")
        names = ["20110101_0000_one", "20110201_0000_two", "20110301_0000_three", "20110401_0000_four"]
        return [thing.migration(name, None, Change()) for name in names]

    def test_nothing_pending(self, migrations: list) -> None:
        assert resolve_plan(migrations, [], None) is None

    def test_all_pending(self, migrations: list) -> None:
        plan = resolve_plan(migrations[:1], migrations[1:], None)
        assert plan.direction == Direction.FORWARD
        assert plan.names == ["20110201_0000_two", "20110301_0000_three", "20110401_0000_four"]

    def test_pending_target(self, migrations: list) -> None:
        plan = resolve_plan(migrations[:1], migrations[1:], "20110301_0000_three")
        assert plan.direction == Direction.FORWARD
        assert plan.names == ["20110201_0000_two", "20110301_0000_three"]

    def test_applied_target(self, migrations: list) -> None:
        plan = resolve_plan(migrations, [], "20110201_0000_two")
        assert plan.direction == Direction.REVERSE
        assert plan.names == ["20110401_0000_four", "20110301_0000_three"]

    def test_latest_applied_target(self, migrations: list) -> None:
        assert resolve_plan(migrations[:2], migrations[2:], "20110201_0000_two") is None

    @pytest.mark.parametrize("target", [MIGRATE_ZERO, "0"])
    def test_zero(self, migrations: list, target: str) -> None:
        plan = resolve_plan(migrations[:3], migrations[3:], target)
        assert plan.direction == Direction.REVERSE
        assert plan.names == ["20110301_0000_three", "20110201_0000_two", "20110101_0000_one"]
        assert len(plan) == 3

    def test_zero_with_nothing_applied(self, migrations: list) -> None:
        assert resolve_plan([], migrations, MIGRATE_ZERO) is None

    def test_unknown_target(self, migrations: list) -> None:
        with pytest.raises(UnknownMigrationError, match="couldn't find migration 'nope'"):
            resolve_plan(migrations[:2], migrations[2:], "nope")


class TestRun:
    """Tests for running migrations."""

    async def test_migrates_everything_pending(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        plan = await Migrator(registry, thing_migrations, executor).run()

        assert plan.direction == Direction.FORWARD
        assert plan.names == [SIMPLE, ANOTHER]
        assert ledger_rows(executor) == [(SIMPLE, "Thing"), (ANOTHER, "Thing")]
        assert "DEFINE FIELD age ON things TYPE number;" in executor.statements
        assert "DEFINE FIELD strength ON things TYPE number;" in executor.statements

    async def test_skips_applied(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        seed_ledger(executor, (SIMPLE, "Thing"))

        plan = await Migrator(registry, thing_migrations, executor).run()

        assert plan.names == [ANOTHER]
        assert "DEFINE FIELD age ON things TYPE number;" not in executor.statements
        assert "DEFINE FIELD strength ON things TYPE number;" in executor.statements

    async def test_reverse_to_target(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        seed_ledger(executor, (SIMPLE, "Thing"), (ANOTHER, "Thing"))

        plan = await Migrator(registry, thing_migrations, executor, MigratorOptions(target=SIMPLE)).run()

        assert plan.direction == Direction.REVERSE
        assert plan.names == [ANOTHER]
        assert ledger_rows(executor) == [(SIMPLE, "Thing")]
        assert "REMOVE FIELD strength ON things;" in executor.statements
        assert "REMOVE FIELD age ON things;" not in executor.statements

    async def test_forward_target_is_idempotent(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        options = MigratorOptions(target=SIMPLE)

        first = await Migrator(registry, thing_migrations, executor, options).run()
        second = await Migrator(registry, thing_migrations, executor, options).run()

        assert first.names == [SIMPLE]
        assert second is None
        assert ledger_rows(executor) == [(SIMPLE, "Thing")]

    async def test_round_trip(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        before = ledger_rows(executor)

        await Migrator(registry, thing_migrations, executor).run()
        plan = await Migrator(registry, thing_migrations, executor, MigratorOptions(target=MIGRATE_ZERO)).run()

        assert plan.names == [ANOTHER, SIMPLE]
        assert ledger_rows(executor) == before == []
        assert executor.statements[-4:] == [
            "REMOVE FIELD strength ON things;",
            "DELETE schema_migrations WHERE name = $name AND model_class = $model_class;",
            "REMOVE FIELD age ON things;",
            "DELETE schema_migrations WHERE name = $name AND model_class = $model_class;",
        ]

    async def test_one_transaction_per_step(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        await Migrator(registry, thing_migrations, executor).run()

        assert len(executor.transactions) == 2
        assert all(tx.committed for tx in executor.transactions)

    async def test_failure_keeps_earlier_steps(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        calls = []

        async def explode(session):
            await session.execute("DEFINE FIELD broken ON things TYPE number;")
            raise RuntimeError("boom")

        async def later(session):
            calls.append("later")

        thing_migrations.migration("20110401_0000_broken", "Breaks", UpDown(up=explode))
        thing_migrations.migration("20110901_0000_later", "Never runs", UpDown(up=later))

        with pytest.raises(RuntimeError, match="boom"):
            await Migrator(registry, thing_migrations, executor).run()

        assert ledger_rows(executor) == [(SIMPLE, "Thing")]
        assert "DEFINE FIELD age ON things TYPE number;" in executor.statements
        assert executor.rolled_back == ["DEFINE FIELD broken ON things TYPE number;"]
        assert calls == []

    async def test_ledger_failure_rolls_back_the_step(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        executor.fail_on(r"^CREATE schema_migrations")

        with pytest.raises(QueryError, match="Simulated failure"):
            await Migrator(registry, thing_migrations, executor).run()

        assert ledger_rows(executor) == []
        assert "DEFINE FIELD age ON things TYPE number;" not in executor.statements
        assert executor.rolled_back == ["DEFINE FIELD age ON things TYPE number;"]

    async def test_irreversible_step(
        self, registry: EntityRegistry, thing: Entity, executor: MemoryExecutor
    ) -> None:
        async def up(session):
            await session.execute("UPDATE things SET name = string::uppercase(name);")

        thing.migration(SIMPLE, "Uppercase names", UpDown(up=up))
        await Migrator(registry, thing, executor).run()

        with pytest.raises(IrreversibleMigrationError):
            await Migrator(registry, thing, executor, MigratorOptions(target=MIGRATE_ZERO)).run()

        assert ledger_rows(executor) == [(SIMPLE, "Thing")]

    async def test_logs_each_step(
        self,
        registry: EntityRegistry,
        thing_migrations: Entity,
        executor: MemoryExecutor,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO, logger="surreal_inline"):
            await Migrator(registry, thing_migrations, executor).run()

        assert "Migrating 2 steps forward..." in caplog.text
        assert "Begin: A very simple migration., direction: forward" in caplog.text
        assert "finished: A later simple migration., direction: forward" in caplog.text

    async def test_nothing_to_do(
        self, registry: EntityRegistry, thing: Entity, executor: MemoryExecutor
    ) -> None:
        assert await Migrator(registry, thing, executor).run() is None
        assert executor.transactions == []


class TestRegisterExisting:
    """Tests for fast-forwarding the migrations of a new table."""

    async def test_records_without_applying(
        self, registry: EntityRegistry, thing: Entity, executor: MemoryExecutor
    ) -> None:
        calls = []

        async def up(session):
            calls.append(session)

        for name in (SIMPLE, "20110404_1817_index_name", ANOTHER):
            thing.migration(name, None, UpDown(up=up))

        registered = await Migrator(registry, thing, executor).register_existing(thing)

        assert [m.name for m in registered] == [SIMPLE, "20110404_1817_index_name", ANOTHER]
        assert len(executor.rows("schema_migrations")) == 3
        assert calls == []

    async def test_skips_recorded(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        seed_ledger(executor, (SIMPLE, "Thing"))

        registered = await Migrator(registry, thing_migrations, executor).register_existing(thing_migrations)

        assert [m.name for m in registered] == [ANOTHER]
        assert ledger_rows(executor) == [(SIMPLE, "Thing"), (ANOTHER, "Thing")]

    async def test_then_nothing_pending(
        self, registry: EntityRegistry, thing_migrations: Entity, executor: MemoryExecutor
    ) -> None:
        migrator = Migrator(registry, thing_migrations, executor)
        await migrator.register_existing(thing_migrations)

        assert await migrator.run() is None
