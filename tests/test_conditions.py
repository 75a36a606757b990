""" Test cases for condition evaluation """

import logging

import pytest

from taleforge import conditions, predicates
from . import stat

def test_stat_comparisons(evaluator):
    context = {"level": 5}
    assert evaluator.evaluate(stat("level", "gte", 5), context)
    assert evaluator.evaluate(stat("level", "lte", 5), context)
    assert not evaluator.evaluate(stat("level", "gt", 5), context)
    assert not evaluator.evaluate(stat("level", "lt", 5), context)
    assert evaluator.evaluate(stat("level", "eq", 5), context)
    assert not evaluator.evaluate(stat("level", "neq", 5), context)

def test_stat_missing_is_zero(evaluator):
    assert evaluator.evaluate(stat("gold", "lt", 1), {})
    assert not evaluator.evaluate(stat("gold", "gte", 1), {})

def test_stat_dotted_path(evaluator):
    context = {"environment": {"temperature": 25}}
    assert evaluator.evaluate(stat("environment.temperature", "gt", 20), context)
    assert not evaluator.evaluate(stat("environment.humidity", "gt", 20), context)

def test_negate(evaluator):
    assert not evaluator.evaluate(stat("level", "gte", 5, negate=True), {"level": 7})
    assert evaluator.evaluate(stat("level", "gte", 5, negate=True), {"level": 2})

def test_item_and_quest_membership(evaluator):
    context = {"inventory": ["lantern", "rope"], "quests": ["missing_cat"]}
    assert evaluator.evaluate({"type": "item_requirement", "operator": "has", "value": "rope"}, context)
    assert not evaluator.evaluate({"type": "item_requirement", "operator": "has", "value": "sword"}, context)
    assert evaluator.evaluate({"type": "item_requirement", "operator": "not_has", "value": "sword"}, context)
    assert evaluator.evaluate({"type": "quest_requirement", "operator": "has", "value": "missing_cat"}, context)
    assert not evaluator.evaluate({"type": "quest_requirement", "operator": "not_has", "value": "missing_cat"}, context)

    # no inventory at all
    assert not evaluator.evaluate({"type": "item_requirement", "operator": "has", "value": "rope"}, {})

def test_relationship_requirement(evaluator):
    context = {"relationships": {"innkeeper": 40, "guard": {"strength": -20}}}
    assert evaluator.evaluate({"type": "relationship_requirement", "field": "innkeeper", "operator": "gte", "value": 30}, context)
    assert evaluator.evaluate({"type": "relationship_requirement", "field": "guard", "operator": "lt", "value": 0}, context)
    # rule style parameters
    assert evaluator.evaluate({"type": "relationship_requirement", "params": {"npc": "innkeeper", "min": 40}}, context)
    assert not evaluator.evaluate({"type": "relationship_requirement", "field": "stranger", "operator": "gt", "value": 0}, context)

def test_custom_condition(evaluator):
    context = {
        "hour": 22,
        "custom_conditions": {"after_hour": lambda value, ctx: ctx["hour"] >= value},
    }
    assert evaluator.evaluate({"type": "custom", "field": "after_hour", "value": 20}, context)
    assert not evaluator.evaluate({"type": "custom", "field": "after_hour", "value": 23}, context)

def test_custom_condition_missing(evaluator, caplog):
    assert not evaluator.evaluate({"type": "custom", "field": "after_hour", "value": 20}, {"hour": 22})
    assert "after_hour" in caplog.text

def test_custom_condition_raises(evaluator, caplog):
    context = {"custom_conditions": {"ratio": lambda value, ctx: 1 / value > 1}}
    assert not evaluator.evaluate({"type": "custom", "field": "ratio", "value": 0}, context)
    assert "ZeroDivisionError" in caplog.text

    context = {"custom_conditions": {"broken": lambda value, ctx: ctx["history"][value]}}
    assert not evaluator.evaluate({"type": "custom", "field": "broken", "value": 3}, context)

def test_composites(evaluator):
    high = stat("level", "gte", 10)
    low = stat("level", "lt", 3)
    assert evaluator.evaluate({"type": "or", "conditions": [high, low]}, {"level": 1})
    assert not evaluator.evaluate({"type": "or", "conditions": [high, low]}, {"level": 5})
    assert evaluator.evaluate({"type": "and", "conditions": [high, stat("gold", "gt", 0)]}, {"level": 12, "gold": 3})
    assert evaluator.evaluate({"type": "not", "condition": high}, {"level": 5})
    assert not evaluator.evaluate({"type": "not", "params": {"condition": high}}, {"level": 15})

    nested = {"type": "or", "conditions": [
        {"type": "and", "conditions": [high, stat("gold", "gt", 100)]},
        {"type": "not", "conditions": [stat("gold", "gt", 0)]},
    ]}
    assert evaluator.evaluate(nested, {"level": 11, "gold": 150})
    assert evaluator.evaluate(nested, {"level": 1, "gold": 0})
    assert not evaluator.evaluate(nested, {"level": 11, "gold": 50})

def test_mutually_exclusive_and_is_false(evaluator):
    condition = {"type": "and", "conditions": [stat("level", "gte", 10), stat("level", "lt", 10)]}
    for level in range(0, 21):
        assert not evaluator.evaluate(condition, {"level": level})
    assert not evaluator.evaluate(condition, {})

def test_empty_composites(evaluator):
    assert evaluator.evaluate({"type": "and", "conditions": []}, {})
    assert not evaluator.evaluate({"type": "or", "conditions": []}, {})

def test_unknown_type_is_false(evaluator, caplog):
    assert not evaluator.evaluate({"type": "phase_of_moon", "value": "full"}, {})
    assert "phase_of_moon" in caplog.text
    assert not evaluator.evaluate("level > 5", {"level": 10})
    assert not evaluator.evaluate({"field": "level"}, {"level": 10})

def test_bad_operator_is_false(evaluator, caplog):
    assert not evaluator.evaluate(stat("level", "approximately", 5), {"level": 5})
    assert "approximately" in caplog.text
    assert not evaluator.evaluate({"type": "item_requirement", "operator": "owns", "value": "rope"}, {"inventory": ["rope"]})

def test_type_mismatch_is_false(evaluator, caplog):
    with caplog.at_level(logging.WARNING):
        assert not evaluator.evaluate(stat("level", "gte", 5), {"level": "high"})
    assert "error evaluating condition" in caplog.text

def test_rule_vocabulary(evaluator):
    context = {
        "gold": 150,
        "name": "Bob",
        "career": "merchant",
        "tags": ["noble"],
        "weather": "rain",
        "environment": {"season": "winter"},
    }
    assert evaluator.evaluate({"type": "stat_greater_than", "params": {"stat": "gold", "value": 100}}, context)
    assert not evaluator.evaluate({"type": "stat_less_than", "params": {"stat": "gold", "value": 100}}, context)
    # not a number
    assert not evaluator.evaluate({"type": "stat_greater_than", "params": {"stat": "name", "value": 0}}, context)
    # missing
    assert not evaluator.evaluate({"type": "stat_less_than", "params": {"stat": "silver", "value": 100}}, context)
    assert evaluator.evaluate({"type": "stat_equals", "params": {"stat": "career", "value": "merchant"}}, context)
    assert evaluator.evaluate({"type": "has_tag", "params": {"tag": "noble"}}, context)
    assert not evaluator.evaluate({"type": "has_tag", "params": {"tag": "outlaw"}}, context)
    assert evaluator.evaluate({"type": "career_is", "params": {"career": "merchant"}}, context)
    assert evaluator.evaluate({"type": "season_is", "params": {"season": "winter"}}, context)
    assert evaluator.evaluate({"type": "weather_is", "params": {"weather": "rain"}}, context)
    assert not evaluator.evaluate({"type": "weather_is", "params": {"weather": "storm"}}, context)

def test_environment_takes_precedence(evaluator):
    context = {"season": "summer", "environment": {"season": "winter"}}
    assert evaluator.evaluate({"type": "season_is", "params": {"season": "winter"}}, context)
    assert not evaluator.evaluate({"type": "season_is", "params": {"season": "summer"}}, context)

def test_random_chance(evaluator):
    assert all(evaluator.evaluate({"type": "random_chance", "params": {"probability": 1.0}}, {}) for _ in range(20))
    assert not any(evaluator.evaluate({"type": "random_chance", "params": {"probability": 0.0}}, {}) for _ in range(20))

def test_evaluate_all(evaluator):
    context = {"level": 5, "gold": 10}
    assert evaluator.evaluate_all([], context)
    assert evaluator.evaluate_all(None, context)
    assert evaluator.evaluate_all([stat("level", "gte", 5), stat("gold", "gte", 10)], context)
    assert not evaluator.evaluate_all([stat("level", "gte", 5), stat("gold", "gte", 11)], context)
    # a single condition where a list was expected
    assert evaluator.evaluate_all(stat("level", "gte", 5), context)
    assert not evaluator.evaluate_all("level", context)

def test_validate(evaluator):
    assert evaluator.validate([stat("level", "gte", 5)]) == []
    assert evaluator.validate("nope") == ["conditions must be a list"]

    errors = evaluator.validate([
        {"type": "and", "conditions": [stat("level", "gte", 5), {"type": "bogus"}]},
        {"field": "level"},
    ])
    assert errors == [
        "conditions[0].conditions[1] has unknown type: bogus",
        "conditions[1] missing type",
    ]

def test_register_condition_type(evaluator):
    assert not evaluator.is_known("always")
    evaluator.register("always", lambda ev, params: predicates.Literal(True))
    assert evaluator.is_known("always")
    assert evaluator.evaluate({"type": "always"}, {})
    assert not evaluator.evaluate({"type": "always", "negate": True}, {})

def test_module_level_evaluate():
    assert conditions.evaluate(stat("level", "gte", 5), {"level": 6})
    assert not conditions.evaluate_all([stat("level", "gte", 5)], {"level": 4})

def test_predicates():
    t = predicates.Literal(True)
    f = predicates.Literal(False)
    assert predicates.Conjunction([t, t]).evaluate(None)
    assert not predicates.Conjunction([t, f]).evaluate(None)
    assert predicates.Disjunction([f, t]).evaluate(None)
    assert not predicates.Disjunction([f, f]).evaluate(None)
    assert predicates.Negation(f).evaluate(None)
