"""Tests for SnapshotExporter."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.exceptions import ContentUnavailableError, FiscalYearNotFoundError
from budget_kernel.services.repositories import AttachmentRepository
from budget_duplication.snapshot.exporter import (
    EXPORT_FORMAT_VERSION,
    SnapshotExporter,
    spec_kinds_below_fiscal_year,
)
from tests.builders import CONTRACT_PDF, INVOICE_PDF, QUOTE_PDF, collect_aggregate


@pytest.fixture
def exporter(session, registry, deterministic_clock):
    return SnapshotExporter(session, registry, clock=deterministic_clock)


@pytest.fixture
def snapshot(exporter, sample_fiscal_year):
    return exporter.export(sample_fiscal_year.fiscal_year_id, exported_by="analyst@example.org")


class TestMetadata:
    def test_identifies_the_source(self, snapshot, sample_fiscal_year, responsibility_centre):
        metadata = snapshot.metadata
        assert metadata.version == EXPORT_FORMAT_VERSION
        assert metadata.exported_by == "analyst@example.org"
        assert metadata.exported_at == datetime(2025, 4, 1, 12, 0, tzinfo=timezone.utc)
        assert metadata.source_fy_id == str(sample_fiscal_year.fiscal_year_id)
        assert metadata.source_fy_name == "FY 2025-2026"
        assert metadata.source_rc_id == str(responsibility_centre.id)
        assert metadata.source_rc_name == "Corporate Finance"

    def test_counts_by_kind(self, snapshot):
        counts = snapshot.metadata.counts_by_kind
        assert set(counts) == {kind.camel_name for kind in spec_kinds_below_fiscal_year()}
        assert counts["moneyType"] == 2
        assert counts["fundingAllocation"] == 2
        assert counts["procurementQuoteFile"] == 1
        assert counts["spendingInvoiceFile"] == 1

    def test_kinds_below_fiscal_year(self):
        kinds = spec_kinds_below_fiscal_year()
        assert EntityKind.FISCAL_YEAR not in kinds
        assert set(kinds) == set(EntityKind) - {EntityKind.FISCAL_YEAR}


class TestStructure:
    def test_sections_hold_top_level_records(self, snapshot):
        assert [n.record.get("code") for n in snapshot.nodes(EntityKind.MONEY_TYPE)] == ["AB", "OA"]
        assert [n.record.get("name") for n in snapshot.nodes(EntityKind.CATEGORY)] == [
            "Operations", "Equipment"
        ]
        assert len(snapshot.nodes(EntityKind.FUNDING_ITEM)) == 1

    def test_nodes_carry_no_store_ids(self, snapshot):
        pending = [n for kind in snapshot.sections for n in snapshot.nodes(kind)]
        while pending:
            node = pending.pop()
            assert node.record.id is None
            assert node.record.parent_id is None
            assert node.ref is not None
            pending.extend(node.children)

    def test_children_are_nested(self, snapshot):
        (procurement,) = snapshot.nodes(EntityKind.PROCUREMENT_ITEM)
        (quote,) = procurement.children_of(EntityKind.PROCUREMENT_QUOTE)
        (quote_file,) = quote.children_of(EntityKind.PROCUREMENT_QUOTE_FILE)
        assert quote.record.get("vendor_name") == "Acme Computers"
        assert quote_file.record.get("name") == "quote.pdf"

        (spending,) = snapshot.nodes(EntityKind.SPENDING_ITEM)
        assert len(spending.children_of(EntityKind.SPENDING_ALLOCATION)) == 1
        assert len(spending.children_of(EntityKind.SPENDING_EVENT)) == 1
        (invoice,) = spending.children_of(EntityKind.SPENDING_INVOICE)
        assert len(invoice.children_of(EntityKind.SPENDING_INVOICE_FILE)) == 1

    def test_payloads_are_embedded(self, snapshot):
        (procurement,) = snapshot.nodes(EntityKind.PROCUREMENT_ITEM)
        (quote,) = procurement.children_of(EntityKind.PROCUREMENT_QUOTE)
        (event,) = procurement.children_of(EntityKind.PROCUREMENT_EVENT)
        (spending,) = snapshot.nodes(EntityKind.SPENDING_ITEM)
        (invoice,) = spending.children_of(EntityKind.SPENDING_INVOICE)

        assert quote.children[0].record.content == QUOTE_PDF
        assert event.children[0].record.content == CONTRACT_PDF
        assert invoice.children[0].record.content == INVOICE_PDF


class TestReferences:
    def test_allocations_name_their_money_type_in_money_type_order(self, snapshot):
        (funding,) = snapshot.nodes(EntityKind.FUNDING_ITEM)
        codes = [
            a.record.references["money_type_id"]
            for a in funding.children_of(EntityKind.FUNDING_ALLOCATION)
        ]
        assert codes == ["AB", "OA"]

    def test_items_name_their_category(self, snapshot):
        (funding,) = snapshot.nodes(EntityKind.FUNDING_ITEM)
        (travel,) = snapshot.nodes(EntityKind.TRAVEL_ITEM)
        assert funding.record.references["category_id"] == "Operations"
        assert travel.record.references["category_id"] is None

    def test_spending_item_points_at_exported_procurement_item(self, snapshot, sample_fiscal_year):
        (procurement,) = snapshot.nodes(EntityKind.PROCUREMENT_ITEM)
        (spending,) = snapshot.nodes(EntityKind.SPENDING_ITEM)
        assert spending.record.references["procurement_item_id"] == procurement.ref
        assert procurement.ref == str(sample_fiscal_year["procurement"])

    def test_amounts_stay_decimal(self, snapshot):
        (funding,) = snapshot.nodes(EntityKind.FUNDING_ITEM)
        caps = {
            a.record.references["money_type_id"]: a.record.get("cap_amount")
            for a in funding.children_of(EntityKind.FUNDING_ALLOCATION)
        }
        assert caps["AB"] == Decimal("10000")
        assert isinstance(caps["AB"], Decimal)


class TestReadOnly:
    def test_export_writes_nothing(self, session, exporter, sample_fiscal_year):
        before = {
            r.id: (r.values, r.references)
            for records in collect_aggregate(session, sample_fiscal_year.fiscal_year_id).values()
            for r in records
        }
        exporter.export(sample_fiscal_year.fiscal_year_id)

        assert not session.new and not session.dirty and not session.deleted
        session.expire_all()
        after = {
            r.id: (r.values, r.references)
            for records in collect_aggregate(session, sample_fiscal_year.fiscal_year_id).values()
            for r in records
        }
        assert after == before


class TestFailures:
    def test_missing_fiscal_year(self, exporter):
        with pytest.raises(FiscalYearNotFoundError):
            exporter.export(uuid4())

    def test_unreadable_payload_degrades_to_null(
        self, exporter, sample_fiscal_year, monkeypatch, captured_logs
    ):
        original = AttachmentRepository.read_content

        def flaky(self, file_id):
            if self.kind is EntityKind.PROCUREMENT_EVENT_FILE:
                raise ContentUnavailableError(self.kind.value, str(file_id), "blob store offline")
            return original(self, file_id)

        monkeypatch.setattr(AttachmentRepository, "read_content", flaky)

        snapshot = exporter.export(sample_fiscal_year.fiscal_year_id)

        (procurement,) = snapshot.nodes(EntityKind.PROCUREMENT_ITEM)
        (event,) = procurement.children_of(EntityKind.PROCUREMENT_EVENT)
        (quote,) = procurement.children_of(EntityKind.PROCUREMENT_QUOTE)
        assert event.children[0].record.content is None
        assert event.children[0].record.get("name") == "contract.bin"
        assert quote.children[0].record.content == QUOTE_PDF

        warnings = [r for r in captured_logs() if r["message"] == "export_file_content_unavailable"]
        assert len(warnings) == 1
        assert warnings[0]["file_name"] == "contract.bin"
        assert warnings[0]["error_code"] == "CONTENT_UNAVAILABLE"
        assert warnings[0]["producer"] == "export"

    def test_export_logs_counts(self, exporter, sample_fiscal_year, captured_logs):
        exporter.export(sample_fiscal_year.fiscal_year_id)
        (completed,) = [r for r in captured_logs() if r["message"] == "export_completed"]
        assert completed["counts_by_kind"]["fundingItem"] == 1
        assert completed["fiscal_year_id"] == str(sample_fiscal_year.fiscal_year_id)
