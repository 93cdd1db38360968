"""Tests for the failure policies of the duplication walk."""

import pytest

from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.exceptions import DuplicateNameError
from budget_duplication.engine import AtomicPolicy, PerItemPolicy
from tests.builders import create_record


@pytest.fixture
def fiscal_year(fiscal_year_service, responsibility_centre, test_actor_id):
    return fiscal_year_service.create_fiscal_year(
        responsibility_centre.id, "FY 2025-2026", test_actor_id
    )


class TestAtomicPolicy:
    def test_returns_the_unit_result(self, session):
        assert AtomicPolicy().run_unit(
            session, lambda: 42, kind=EntityKind.FUNDING_ITEM, position=0, label="Grant"
        ) == 42

    def test_errors_escape(self, session):
        def unit():
            raise DuplicateNameError("funding_item", "name", "Grant", None)

        with pytest.raises(DuplicateNameError):
            AtomicPolicy().run_unit(
                session, unit, kind=EntityKind.FUNDING_ITEM, position=0, label="Grant"
            )


class TestPerItemPolicy:
    def test_failed_unit_is_rolled_back_and_recorded(self, session, registry, fiscal_year):
        policy = PerItemPolicy()

        def unit():
            create_record(registry, EntityKind.FUNDING_ITEM, fiscal_year.id, name="Written")
            create_record(registry, EntityKind.FUNDING_ITEM, fiscal_year.id, name="Written")

        assert policy.run_unit(
            session, unit, kind=EntityKind.FUNDING_ITEM, position=3, label="Written"
        ) is None

        (error,) = policy.errors
        assert (error.kind, error.position, error.label, error.code) == (
            EntityKind.FUNDING_ITEM, 3, "Written", "DUPLICATE_NAME"
        )
        assert "Written" in error.message
        assert registry.get(EntityKind.FUNDING_ITEM).count_children_of(fiscal_year.id) == 0

    def test_earlier_units_survive_a_later_failure(self, session, registry, fiscal_year):
        policy = PerItemPolicy()
        policy.run_unit(
            session,
            lambda: create_record(registry, EntityKind.TRAVEL_ITEM, fiscal_year.id, name="Trip"),
            kind=EntityKind.TRAVEL_ITEM, position=0, label="Trip",
        )
        policy.run_unit(
            session,
            lambda: create_record(registry, EntityKind.TRAVEL_ITEM, fiscal_year.id, name="Trip"),
            kind=EntityKind.TRAVEL_ITEM, position=1, label="Trip",
        )

        assert [e.position for e in policy.errors] == [1]
        assert registry.get(EntityKind.TRAVEL_ITEM).count_children_of(fiscal_year.id) == 1

    def test_unexpected_errors_are_recorded_too(self, session):
        policy = PerItemPolicy()

        def unit():
            raise KeyError("surprise")

        policy.run_unit(session, unit, kind=EntityKind.CATEGORY, position=None, label="x")
        assert policy.errors[0].code == "UNEXPECTED_ERROR"
