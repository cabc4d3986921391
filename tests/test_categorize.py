from spend_analytics.categorize import (
    CategoryMappingStore,
    build_category_mapping,
    classify,
    guess_category,
)
from spend_analytics.persistence import CATEGORY_MAPPINGS_KEY

from tests.helpers.stores import FailingStore, MemoryStore


def test_guess_category_first_rule_wins():
    assert guess_category("Lab consumables") == "Clinical, Lab and scientific services"
    # "prod" (rule 2) matches before "print" (rule 5)
    assert guess_category("Production printing") == "Production Equipment"
    assert guess_category("Freight & transport") == "External Warehouse and distribution"
    assert guess_category("Legal fees") == "Professional Services"
    assert guess_category("Toner cartridges") == "Office and Print"
    assert guess_category("Facility services") == "Miscellaneous Indirect Costs"
    assert guess_category("ZZ-9000") is None
    assert guess_category("") is None


def test_classify_resolution_order():
    saved = {"ZLAB": "Office and Print", "Lab gear": "Production Equipment"}
    # canonical name beats everything
    assert classify("professional services", saved) == "Professional Services"
    # saved mapping beats the keyword guess
    assert classify("Lab gear", saved) == "Production Equipment"
    assert classify("ZLAB", saved) == "Office and Print"
    assert classify("Lab gear") == "Clinical, Lab and scientific services"
    assert classify("ZZ-9000", saved) is None
    assert classify("   ", saved) is None


def test_classify_ignores_saved_values_outside_the_enum():
    assert classify("ZZ-1", {"ZZ-1": "Groceries"}) is None


def test_build_category_mapping_leaves_unknown_values_out():
    mapping = build_category_mapping(["ZLAB01", "Office supplies", "ZLAB01", None, "", "ZZZ"])
    assert mapping == {"ZLAB01": "Clinical, Lab and scientific services", "Office supplies": "Office and Print"}


def test_mapping_store_merges_and_persists_across_instances():
    store = MemoryStore()
    CategoryMappingStore(store).merge({"ZLAB01": "Clinical, Lab and scientific services"})
    assert CategoryMappingStore(store).merge({"ZOFF": "office and print", "bad": "Nope"})

    reloaded = CategoryMappingStore(store).load()
    assert reloaded == {
        "ZLAB01": "Clinical, Lab and scientific services",
        "ZOFF": "Office and Print",
    }


def test_mapping_store_skips_write_when_nothing_valid():
    store = MemoryStore()
    assert CategoryMappingStore(store).merge({"x": "not a category"})
    assert CATEGORY_MAPPINGS_KEY not in store.writes


def test_mapping_store_reports_write_failure():
    store = FailingStore()
    assert CategoryMappingStore(store).merge({"ZLAB": "Office and Print"}) is False
    assert CategoryMappingStore(store).load() == {}
