"""
Tests for the snapshot JSON codec.

Document shape, value encodings, tolerant reading of null lists, and
SnapshotFormatError paths for malformed documents.
"""

import base64
import copy
import json
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.exceptions import SnapshotFormatError
from budget_duplication.snapshot import (
    SnapshotExporter,
    dumps,
    loads,
    snapshot_from_dict,
    snapshot_to_dict,
)
from budget_duplication.snapshot.codec import camel, decode_content, encode_content
from tests.builders import CONTRACT_PDF, QUOTE_PDF


@pytest.fixture
def document(session, registry, deterministic_clock, sample_fiscal_year):
    snapshot = SnapshotExporter(session, registry, clock=deterministic_clock).export(
        sample_fiscal_year.fiscal_year_id, exported_by="analyst"
    )
    return snapshot_to_dict(snapshot)


def _minimal(**sections):
    return {"metadata": {"version": "1.0.0"}, **sections}


def _funding_item(**allocation):
    return {
        "item": {"name": "Grant"},
        "moneyAllocations": [{"moneyCode": "AB", "capAmount": "1", "omAmount": "2", **allocation}],
    }


class TestDocumentShape:
    def test_top_level_keys(self, document):
        assert set(document) == {
            "metadata",
            "moneyTypes",
            "categories",
            "spendingCategories",
            "procurementItems",
            "fundingItems",
            "spendingItems",
            "trainingItems",
            "travelItems",
        }

    def test_metadata(self, document):
        metadata = document["metadata"]
        assert metadata["version"] == "1.0.0"
        assert metadata["exportedBy"] == "analyst"
        assert metadata["exportedAt"] == "2025-04-01T12:00:00+00:00"
        assert metadata["sourceFyName"] == "FY 2025-2026"
        assert metadata["sourceRcName"] == "Corporate Finance"
        assert metadata["countsByKind"]["fundingAllocation"] == 2

    def test_reference_data_is_flat(self, document):
        money = document["moneyTypes"][0]
        assert money["code"] == "AB"
        assert money["isDefault"] is True
        assert money["displayOrder"] == 0
        assert "item" not in money

    def test_line_items_are_wrapped(self, document):
        funding = document["fundingItems"][0]
        assert set(funding) == {"item", "moneyAllocations"}
        assert funding["item"]["name"] == "Grant"
        assert funding["item"]["categoryName"] == "Operations"
        assert funding["item"]["status"] == "APPROVED"

        procurement = document["procurementItems"][0]
        assert set(procurement) == {"item", "quotes", "events"}
        assert set(procurement["quotes"][0]) == {"quote", "files"}
        assert set(procurement["events"][0]) == {"event", "files"}

        spending = document["spendingItems"][0]
        assert set(spending) == {"item", "moneyAllocations", "events", "invoices"}
        assert set(spending["invoices"][0]) == {"invoice", "files"}
        assert "event" not in spending["events"][0]

    def test_cross_references(self, document):
        allocations = document["fundingItems"][0]["moneyAllocations"]
        assert sorted(a["moneyCode"] for a in allocations) == ["AB", "OA"]
        assert document["travelItems"][0]["item"]["categoryName"] is None
        assert (
            document["spendingItems"][0]["item"]["procurementItemRef"]
            == document["procurementItems"][0]["item"]["id"]
        )

    def test_value_encodings(self, document):
        (allocation,) = [
            a for a in document["fundingItems"][0]["moneyAllocations"] if a["moneyCode"] == "AB"
        ]
        assert isinstance(allocation["capAmount"], str)
        assert Decimal(allocation["capAmount"]) == Decimal("10000")
        item = document["procurementItems"][0]["item"]
        assert item["contractStartDate"] == "2025-05-01"
        assert item["contractEndDate"] is None

    def test_content_is_base64(self, document):
        files = document["procurementItems"][0]["quotes"][0]["files"]
        assert base64.b64decode(files[0]["base64Content"]) == QUOTE_PDF
        assert files[0]["size"] == len(QUOTE_PDF)

    def test_document_is_json_serialisable(self, document):
        json.dumps(document)


class TestDecode:
    def test_decodes_an_exported_document(self, document):
        snapshot = snapshot_from_dict(document)
        (procurement,) = snapshot.nodes(EntityKind.PROCUREMENT_ITEM)
        (event,) = procurement.children_of(EntityKind.PROCUREMENT_EVENT)
        assert event.children[0].record.content == CONTRACT_PDF
        assert snapshot.metadata.counts_by_kind["moneyType"] == 2
        assert snapshot_to_dict(snapshot) == document

    def test_text_round_trip(self, document):
        text = dumps(snapshot_from_dict(document))
        assert snapshot_to_dict(loads(text)) == document
        assert loads(text.encode("utf-8")).metadata.version == "1.0.0"

    def test_null_and_absent_lists_are_empty(self):
        snapshot = snapshot_from_dict(
            _minimal(
                fundingItems=None,
                travelItems=[{"item": {"name": "Trip"}, "moneyAllocations": None}],
            )
        )
        assert snapshot.nodes(EntityKind.FUNDING_ITEM) == ()
        assert snapshot.nodes(EntityKind.MONEY_TYPE) == ()
        (trip,) = snapshot.nodes(EntityKind.TRAVEL_ITEM)
        assert trip.children == ()

    def test_explicit_null_content(self, document):
        broken = copy.deepcopy(document)
        broken["spendingItems"][0]["invoices"][0]["files"][0]["base64Content"] = None
        snapshot = snapshot_from_dict(broken)
        (spending,) = snapshot.nodes(EntityKind.SPENDING_ITEM)
        (invoice,) = spending.children_of(EntityKind.SPENDING_INVOICE)
        assert invoice.children[0].record.content is None

    def test_absent_fields_are_left_out(self):
        snapshot = snapshot_from_dict(_minimal(fundingItems=[{"item": {"name": "Grant"}}]))
        (item,) = snapshot.nodes(EntityKind.FUNDING_ITEM)
        assert dict(item.record.values) == {"name": "Grant"}
        assert item.ref is None

    def test_integer_and_numeric_decimals(self):
        snapshot = snapshot_from_dict(
            _minimal(fundingItems=[_funding_item(capAmount=10, omAmount=2.5)])
        )
        (allocation,) = snapshot.nodes(EntityKind.FUNDING_ITEM)[0].children
        assert allocation.record.get("cap_amount") == Decimal("10")
        assert allocation.record.get("om_amount") == Decimal("2.5")


class TestFormatErrors:
    def test_invalid_json(self):
        with pytest.raises(SnapshotFormatError) as exc_info:
            loads("{not json")
        assert exc_info.value.code == "SNAPSHOT_FORMAT_ERROR"

    def test_not_an_object(self):
        with pytest.raises(SnapshotFormatError):
            loads("[]")

    @pytest.mark.parametrize(
        "document, path",
        [
            ({}, "metadata"),
            ({"metadata": {}}, "metadata.version"),
            ({"metadata": {"version": 1}}, "metadata.version"),
            ({"metadata": {"version": "1.0.0", "exportedAt": "yesterday"}}, "metadata.exportedAt"),
            (
                {"metadata": {"version": "1.0.0", "countsByKind": {"fundingItem": "3"}}},
                "metadata.countsByKind",
            ),
            (_minimal(fundingItems={"item": {}}), "fundingItems"),
            (_minimal(fundingItems=["Grant"]), "fundingItems[0]"),
            (_minimal(fundingItems=[{"name": "Grant"}]), "fundingItems[0].item"),
            (
                _minimal(fundingItems=[{"item": {"name": "Grant"}, "moneyAllocations": "AB"}]),
                "fundingItems[0].moneyAllocations",
            ),
            (
                _minimal(fundingItems=[_funding_item(capAmount="lots")]),
                "fundingItems[0].moneyAllocations[0].capAmount",
            ),
            (
                _minimal(fundingItems=[_funding_item(moneyCode={"code": "AB"})]),
                "fundingItems[0].moneyAllocations[0].moneyCode",
            ),
            (_minimal(moneyTypes=[{"code": "AB", "displayOrder": True}]), "moneyTypes[0].displayOrder"),
            (_minimal(moneyTypes=[{"code": "AB", "isDefault": "yes"}]), "moneyTypes[0].isDefault"),
            (_minimal(moneyTypes=[{"code": 7}]), "moneyTypes[0].code"),
            (
                _minimal(fundingItems=[{"item": {"name": "Grant", "status": "LOST"}}]),
                "fundingItems[0].item.status",
            ),
            (
                _minimal(travelItems=[{"item": {"name": "Trip", "departureDate": "14/09/2025"}}]),
                "travelItems[0].item.departureDate",
            ),
        ],
    )
    def test_error_names_the_offending_path(self, document, path):
        with pytest.raises(SnapshotFormatError) as exc_info:
            snapshot_from_dict(document)
        assert exc_info.value.path == path

    def test_bad_base64(self, document):
        broken = copy.deepcopy(document)
        broken["procurementItems"][0]["quotes"][0]["files"][0]["base64Content"] = "!!not base64!!"
        with pytest.raises(SnapshotFormatError) as exc_info:
            snapshot_from_dict(broken)
        assert exc_info.value.path == "procurementItems[0].quotes[0].files[0].base64Content"


class TestContentEncoding:
    @given(payload=st.binary(max_size=2048))
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_any_payload_survives(self, payload):
        text = encode_content(payload)
        assert text.isascii()
        assert decode_content(text) == payload

    def test_null_stays_null(self):
        assert encode_content(None) is None
        assert decode_content(None) is None

    def test_empty_payload_is_not_null(self):
        assert encode_content(b"") == ""
        assert decode_content("") == b""

    def test_non_string_is_rejected(self):
        with pytest.raises(SnapshotFormatError):
            decode_content(42)


class TestCamel:
    @pytest.mark.parametrize(
        "name, expected",
        [("name", "name"), ("cap_amount", "capAmount"), ("quoted_price_currency", "quotedPriceCurrency")],
    )
    def test_camel(self, name, expected):
        assert camel(name) == expected
