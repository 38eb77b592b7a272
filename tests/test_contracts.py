"""Tests for contractlens.contracts -- queries over normalized contracts."""

from __future__ import annotations

from typing import Any

import pytest

from contractlens.catalog import normalize_document
from contractlens.contracts import (
    MERGED_CONTRACT_ID,
    UNTAGGED_GROUP,
    all_operations,
    count_by_action_type,
    count_by_tag,
    filter_by_action_type,
    filter_by_pattern,
    filter_by_tag,
    find_contract,
    find_contract_operation,
    find_operation_by_id,
    group_by_pattern,
    group_by_protocol,
    group_by_tag,
    merge_contracts,
    operation_slug,
    search_operations,
    sort_by_location,
    sort_by_name,
    unique_action_types,
    unique_tags,
)
from contractlens.exceptions import InvalidUsageError, NotFoundError
from contractlens.exit_codes import EXIT_NOT_FOUND
from contractlens.models import ActionType, CommunicationPattern, Protocol, UnifiedContract


@pytest.fixture
def shop(shop_openapi_raw: dict[str, Any]) -> UnifiedContract:
    return normalize_document(shop_openapi_raw, "shop.json")


@pytest.fixture
def orders(orders_asyncapi_raw: dict[str, Any]) -> UnifiedContract:
    return normalize_document(orders_asyncapi_raw, "orders.json")


@pytest.fixture
def operations(shop: UnifiedContract, orders: UnifiedContract):
    return all_operations([shop, orders])


def _ids(ops) -> list[str]:
    return [op.id for op in ops]


# ---------------------------------------------------------------------------
# Search and filters
# ---------------------------------------------------------------------------


class TestSearch:
    def test_all_operations_in_contract_order(self, operations) -> None:
        assert _ids(operations) == [
            "listProducts",
            "createProduct",
            "getProduct",
            "openapi-op-3",
            "openapi-op-4",
            "publishOrderCreated",
            "onOrderShipped",
        ]

    def test_matches_name_case_insensitive(self, operations) -> None:
        assert _ids(search_operations(operations, "CREATE")) == [
            "createProduct",
            "publishOrderCreated",
        ]

    def test_matches_location(self, operations) -> None:
        assert _ids(search_operations(operations, "orders.shipped")) == ["onOrderShipped"]

    def test_matches_tag(self, operations) -> None:
        assert _ids(search_operations(operations, "billing")) == ["publishOrderCreated"]

    def test_matches_action(self, operations) -> None:
        assert _ids(search_operations(operations, "subscribe")) == ["onOrderShipped"]

    def test_blank_term_returns_everything(self, operations) -> None:
        assert len(search_operations(operations, "  ")) == len(operations)

    def test_no_match(self, operations) -> None:
        assert search_operations(operations, "nothing-like-this") == []


class TestFilters:
    def test_by_action_type(self, operations) -> None:
        result = filter_by_action_type(operations, [ActionType.DELETE, ActionType.PUBLISH])
        assert _ids(result) == ["openapi-op-3", "publishOrderCreated"]

    def test_by_pattern(self, operations) -> None:
        result = filter_by_pattern(operations, CommunicationPattern.PUBLISH_SUBSCRIBE)
        assert _ids(result) == ["publishOrderCreated", "onOrderShipped"]

    def test_by_tag(self, operations) -> None:
        assert _ids(filter_by_tag(operations, "admin")) == ["createProduct"]

    def test_sort_by_name(self, shop: UnifiedContract) -> None:
        names = [op.name for op in sort_by_name(shop.operations)]
        assert names == sorted(names, key=str.lower)

    def test_sort_by_location(self, shop: UnifiedContract) -> None:
        assert sort_by_location(shop.operations)[0].location == "/health"

    def test_inputs_not_mutated(self, shop: UnifiedContract) -> None:
        before = _ids(shop.operations)
        sort_by_name(shop.operations)
        assert _ids(shop.operations) == before


# ---------------------------------------------------------------------------
# Grouping and counting
# ---------------------------------------------------------------------------


class TestGrouping:
    def test_group_by_tag(self, shop: UnifiedContract) -> None:
        grouped = group_by_tag(shop.operations)
        assert _ids(grouped["admin"]) == ["createProduct"]
        assert len(grouped["products"]) == 4
        assert _ids(grouped[UNTAGGED_GROUP]) == ["openapi-op-4"]

    def test_group_by_pattern_has_both_keys(self, shop: UnifiedContract) -> None:
        grouped = group_by_pattern(shop.operations)
        assert set(grouped) == set(CommunicationPattern)
        assert grouped[CommunicationPattern.PUBLISH_SUBSCRIBE] == []
        assert len(grouped[CommunicationPattern.REQUEST_RESPONSE]) == 5

    def test_group_by_protocol(self, operations) -> None:
        grouped = group_by_protocol(operations)
        assert list(grouped) == ["openapi", "asyncapi"]
        assert len(grouped["asyncapi"]) == 2

    def test_unique_tags_sorted(self, operations) -> None:
        assert unique_tags(operations) == ["admin", "billing", "orders", "products"]

    def test_unique_action_types_first_seen(self, operations) -> None:
        assert unique_action_types(operations) == [
            ActionType.GET,
            ActionType.POST,
            ActionType.DELETE,
            ActionType.PUBLISH,
            ActionType.SUBSCRIBE,
        ]

    def test_counts(self, shop: UnifiedContract) -> None:
        assert count_by_action_type(shop.operations) == {
            ActionType.GET: 3,
            ActionType.POST: 1,
            ActionType.DELETE: 1,
        }
        assert count_by_tag(shop.operations) == {"products": 4, "admin": 1}


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class TestLookup:
    def test_find_operation(self, operations) -> None:
        assert find_operation_by_id(operations, "getProduct").location == "/products/{productId}"

    def test_find_operation_missing(self, operations) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            find_operation_by_id(operations, "nope")
        assert exc_info.value.exit_code == EXIT_NOT_FOUND

    def test_find_contract_operation(self, shop, orders) -> None:
        contract, op = find_contract_operation([shop, orders], "onOrderShipped")
        assert contract is orders
        assert op.action_type == ActionType.SUBSCRIBE

    def test_find_contract_operation_missing(self, shop, orders) -> None:
        with pytest.raises(NotFoundError, match="any loaded contract"):
            find_contract_operation([shop, orders], "nope")

    def test_find_contract(self, shop, orders) -> None:
        assert find_contract([shop, orders], "asyncapi-order-events") is orders
        with pytest.raises(NotFoundError):
            find_contract([shop, orders], "openapi-missing")

    def test_operation_slug(self, shop: UnifiedContract) -> None:
        assert operation_slug(shop.operations[0]) == "listproducts-list-products"
        assert operation_slug(shop.operations[2]) == "getproduct-get-products-productid"


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


class TestMerge:
    def test_empty_list(self) -> None:
        with pytest.raises(InvalidUsageError):
            merge_contracts([])

    def test_single_contract_returned_as_is(self, shop: UnifiedContract) -> None:
        assert merge_contracts([shop]) is shop

    def test_merge_two(self, shop: UnifiedContract, orders: UnifiedContract) -> None:
        merged = merge_contracts([shop, orders])
        assert merged.id == MERGED_CONTRACT_ID
        assert merged.name == "Shop API + Order Events"
        assert merged.protocol == Protocol.OPENAPI
        assert merged.version == shop.version
        assert len(merged.operations) == 7
        assert [t.name for t in merged.tags] == ["products", "admin", "orders", "billing"]
        assert merged.metadata.original_spec == {
            "merged": [shop.metadata.original_spec, orders.metadata.original_spec]
        }

    def test_duplicate_ids_rekeyed(self, shop: UnifiedContract) -> None:
        other = shop.model_copy(update={"id": "openapi-shop-copy"})
        merged = merge_contracts([shop, other])
        ids = _ids(merged.operations)
        assert ids[:5] == _ids(shop.operations)
        assert ids[5] == "openapi-shop-copy:listProducts"
        assert len(set(ids)) == len(ids)

    def test_sources_untouched(self, shop: UnifiedContract) -> None:
        other = shop.model_copy(update={"id": "openapi-shop-copy"})
        merge_contracts([shop, other])
        assert other.operations[0].id == "listProducts"
