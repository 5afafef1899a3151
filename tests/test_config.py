import sys
from enum import Enum
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from stockpile import config
from stockpile.config import DemoResource
from stockpile.kinds import kind_from_id, kind_id, normalise_mapping
from stockpile.models import ResourceDefinition
from stockpile.policies import (
    DeficitPolicy,
    LedgerResult,
    OverflowPolicy,
    coerce_deficit_policy,
    coerce_overflow_policy,
)
from stockpile.storage import ResourceLedger


class Tier(Enum):
    LOW = 1
    HIGH = 2


def test_policy_coercion_accepts_strings():
    assert coerce_overflow_policy("Reject") is OverflowPolicy.REJECT
    assert coerce_overflow_policy(OverflowPolicy.ALLOW) is OverflowPolicy.ALLOW
    assert coerce_deficit_policy("allow-negative") is DeficitPolicy.ALLOW_NEGATIVE
    assert coerce_deficit_policy("allow") is DeficitPolicy.ALLOW_NEGATIVE
    assert coerce_deficit_policy(" CLAMP ") is DeficitPolicy.CLAMP


@pytest.mark.parametrize("value", ["explode", "", "allow_negative"])
def test_overflow_coercion_rejects_unknown(value):
    with pytest.raises(ValueError):
        coerce_overflow_policy(value)


def test_result_ok_flag():
    assert LedgerResult.SUCCESS.ok
    assert not any(result.ok for result in LedgerResult if result is not LedgerResult.SUCCESS)
    assert LedgerResult("not_defined") is LedgerResult.NOT_DEFINED


def test_kind_lookup_is_case_insensitive():
    assert kind_from_id(DemoResource, "credits") is DemoResource.CREDITS
    assert kind_from_id(DemoResource, " Energy ") is DemoResource.ENERGY
    assert kind_from_id(DemoResource, DemoResource.FOOD) is DemoResource.FOOD
    assert kind_from_id(Tier, "high") is Tier.HIGH
    with pytest.raises(KeyError):
        kind_from_id(DemoResource, "unobtainium")


def test_kind_id_and_normalisation():
    assert kind_id(DemoResource.MINERALS) == "minerals"
    assert kind_id(Tier.LOW) == "low"
    assert kind_id("wood") == "wood"
    assert normalise_mapping(DemoResource, {"food": 2, DemoResource.ENERGY: "3"}) == {
        DemoResource.FOOD: 2.0,
        DemoResource.ENERGY: 3.0,
    }
    assert normalise_mapping(DemoResource, {"food": 1, "FOOD": 2}) == {DemoResource.FOOD: 3.0}
    with pytest.raises(KeyError):
        normalise_mapping(DemoResource, {"unobtainium": 1})


def test_definition_from_mapping_with_aliases():
    definition = config.definition_from_mapping(
        {"initial": 5, "capacity": 50, "overflow": "reject", "deficit": "allow", "name": "Ore"}
    )
    assert definition == ResourceDefinition(
        initial_amount=5.0,
        max_capacity=50.0,
        overflow_policy=OverflowPolicy.REJECT,
        deficit_policy=DeficitPolicy.ALLOW_NEGATIVE,
        display_name="Ore",
    )


def test_definition_from_mapping_defaults():
    definition = config.definition_from_mapping({})
    assert definition.overflow_policy is config.DEFAULT_OVERFLOW_POLICY
    assert definition.deficit_policy is config.DEFAULT_DEFICIT_POLICY
    assert definition.display_name is None
    assert definition.max_capacity == 0


def test_definition_from_mapping_rejects_unknown_fields():
    with pytest.raises(ValueError):
        config.definition_from_mapping({"capcity": 10})


def test_definitions_from_config_resolves_kinds():
    definitions = config.definitions_from_config(
        Tier, {"low": {"capacity": 10}, Tier.HIGH: ResourceDefinition(initial_amount=3)}
    )
    assert definitions[Tier.LOW].max_capacity == 10
    assert definitions[Tier.HIGH].initial_amount == 3


def test_demo_definitions_cover_every_kind():
    assert set(config.DEMO_DEFINITIONS) == set(DemoResource)
    credits = config.DEMO_DEFINITIONS[DemoResource.CREDITS]
    assert credits.deficit_policy is DeficitPolicy.ALLOW_NEGATIVE
    assert credits.display_name == "Credits"
    assert set(config.DEMO_RATES) <= set(DemoResource)


def test_demo_definitions_load_into_ledger():
    ledger = ResourceLedger(kinds=DemoResource)
    ledger.define_many(config.DEMO_DEFINITIONS)
    assert ledger.defined_count() == len(DemoResource)
    assert ledger.get(DemoResource.ENERGY) == 100
    assert ledger.add(DemoResource.MINERALS, 5000) is LedgerResult.OVERFLOW
    assert ledger.display_name(DemoResource.FOOD) == "Food"
