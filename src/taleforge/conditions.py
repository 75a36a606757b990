""" Condition evaluation against a generation context.

Conditions are plain tables with a "type" key. Parameters can sit at the top
level of the table (the template style):

    {"type": "stat_requirement", "field": "level", "operator": "gte", "value": 5}

or under "params" (the rule style):

    {"type": "stat_greater_than", "params": {"stat": "gold", "value": 100}}

Every condition may carry "negate" to invert its result. The composite types
"and", "or" and "not" nest further conditions.

Conditions are loaded into predicates.Criteria trees by a table of builders
keyed on the type. Unknown types and malformed conditions log a warning and
evaluate to False, they never raise.
"""

import logging
import operator
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Optional

import numpy as np

from taleforge import predicates, util

logger = logging.getLogger(__name__)

Context = Mapping[str, Any]
Condition = Mapping[str, Any]

COMPARATORS:Mapping[str, Callable[[Any, Any], bool]] = {
    "gte": operator.ge,
    "lte": operator.le,
    "gt": operator.gt,
    "lt": operator.lt,
    "eq": operator.eq,
    "neq": operator.ne,
    "ne": operator.ne,
}

MEMBERSHIP_OPERATORS = ("has", "not_has")

COMPOSITE_TYPES = ("and", "or", "not")


def compare(op:str, lhs:Any, rhs:Any) -> bool:
    fn = COMPARATORS.get(op)
    if fn is None:
        logger.warning(f'unknown comparison operator "{op}"')
        return False
    return bool(fn(lhs, rhs))


def condition_params(condition:Condition) -> dict[str, Any]:
    """ flattens top level fields and "params" into one table, params win """
    params = {k:v for k,v in condition.items() if k not in ("type", "params", "negate")}
    nested = condition.get("params")
    if isinstance(nested, Mapping):
        params.update(nested)
    return params


class StatCriteria(predicates.Criteria[Context]):
    """ compares a (dotted path) context value against a constant """
    def __init__(self, field:str, op:str, value:Any, missing:Any=0, numeric_only:bool=False) -> None:
        self.field = field
        self.op = op
        self.value = value
        self.missing = missing
        self.numeric_only = numeric_only

    def evaluate(self, context:Context) -> bool:
        stat = util.get_nested(context, self.field, self.missing)
        if stat is None:
            return False
        if self.numeric_only and not util.is_number(stat):
            return False
        return compare(self.op, stat, self.value)


class MembershipCriteria(predicates.Criteria[Context]):
    """ has/not_has over a list in the context (inventory, quests, tags) """
    def __init__(self, key:str, op:str, value:Any) -> None:
        self.key = key
        self.op = op
        self.value = value

    def evaluate(self, context:Context) -> bool:
        collection = context.get(self.key) or []
        if self.op == "has":
            return self.value in collection
        elif self.op == "not_has":
            return self.value not in collection
        logger.warning(f'unknown membership operator "{self.op}" for {self.key}')
        return False


class RelationshipCriteria(predicates.Criteria[Context]):
    def __init__(self, npc:str, op:str, value:Any) -> None:
        self.npc = npc
        self.op = op
        self.value = value

    def evaluate(self, context:Context) -> bool:
        relationships = context.get("relationships") or {}
        strength = relationships.get(self.npc, 0)
        if isinstance(strength, Mapping):
            strength = strength.get("strength", 0)
        return compare(self.op, strength, self.value)


class CustomCriteria(predicates.Criteria[Context]):
    """ looks up a named predicate in context["custom_conditions"] """
    def __init__(self, name:str, value:Any) -> None:
        self.name = name
        self.value = value

    def evaluate(self, context:Context) -> bool:
        predicate = (context.get("custom_conditions") or {}).get(self.name)
        if not callable(predicate):
            logger.warning(f'no custom condition "{self.name}" in context')
            return False
        # caller code, anything it raises counts as not met
        try:
            return bool(predicate(self.value, context))
        except Exception as e:
            logger.warning(f'custom condition "{self.name}" failed: {e!r}')
            return False


class ValueCriteria(predicates.Criteria[Context]):
    """ equality against the first of several paths present in the context """
    def __init__(self, paths:Sequence[str], value:Any) -> None:
        self.paths = paths
        self.value = value

    def evaluate(self, context:Context) -> bool:
        for path in self.paths:
            found = util.get_nested(context, path)
            if found is not None:
                return found == self.value
        return False


class ChanceCriteria(predicates.Criteria[Context]):
    def __init__(self, probability:float, r:np.random.Generator) -> None:
        self.probability = probability
        self.r = r

    def evaluate(self, context:Context) -> bool:
        return bool(self.r.random() < self.probability)


CriteriaBuilder = Callable[["ConditionEvaluator", dict[str, Any]], predicates.Criteria[Context]]

def _stat_requirement(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return StatCriteria(
        p.get("field") or p.get("stat") or "",
        p.get("operator") or "gte",
        p.get("value", p.get("min", 0)),
    )

def _item_requirement(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return MembershipCriteria("inventory", p.get("operator") or "has", p.get("value", p.get("item")))

def _quest_requirement(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return MembershipCriteria("quests", p.get("operator") or "has", p.get("value", p.get("quest")))

def _relationship_requirement(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return RelationshipCriteria(
        p.get("field") or p.get("npc") or "",
        p.get("operator") or "gte",
        p.get("value", p.get("min", 0)),
    )

def _custom(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return CustomCriteria(p.get("field") or p.get("name") or "", p.get("value"))

def _and(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return predicates.Conjunction([ev.load(c) for c in p.get("conditions") or []])

def _or(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return predicates.Disjunction([ev.load(c) for c in p.get("conditions") or []])

def _not(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    if "condition" in p:
        return predicates.Negation(ev.load(p["condition"]))
    return predicates.Negation(predicates.Conjunction([ev.load(c) for c in p.get("conditions") or []]))

def _stat_greater_than(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return StatCriteria(p.get("stat", ""), "gt", p.get("value"), missing=None, numeric_only=True)

def _stat_less_than(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return StatCriteria(p.get("stat", ""), "lt", p.get("value"), missing=None, numeric_only=True)

def _stat_equals(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return StatCriteria(p.get("stat", ""), "eq", p.get("value"), missing=None)

def _has_tag(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return MembershipCriteria("tags", "has", p.get("tag"))

def _career_is(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return ValueCriteria(("career",), p.get("career"))

def _season_is(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return ValueCriteria(("environment.season", "season"), p.get("season"))

def _weather_is(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return ValueCriteria(("environment.weather", "weather"), p.get("weather"))

def _random_chance(ev:"ConditionEvaluator", p:dict[str, Any]) -> predicates.Criteria[Context]:
    return ChanceCriteria(float(p.get("probability", 0.)), ev.r)

BUILTIN_BUILDERS:Mapping[str, CriteriaBuilder] = {
    "stat_requirement": _stat_requirement,
    "item_requirement": _item_requirement,
    "quest_requirement": _quest_requirement,
    "relationship_requirement": _relationship_requirement,
    "custom": _custom,
    "and": _and,
    "or": _or,
    "not": _not,
    "stat_greater_than": _stat_greater_than,
    "stat_less_than": _stat_less_than,
    "stat_equals": _stat_equals,
    "has_tag": _has_tag,
    "career_is": _career_is,
    "season_is": _season_is,
    "weather_is": _weather_is,
    "random_chance": _random_chance,
}


class ConditionEvaluator:
    """ Evaluates conditions against a context.

    Holds the table of condition builders (extensible via register) and the
    random generator used by random_chance.
    """

    def __init__(self, r:Optional[np.random.Generator]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.r = r if r is not None else np.random.default_rng()
        self.builders:dict[str, CriteriaBuilder] = dict(BUILTIN_BUILDERS)

    def register(self, condition_type:str, builder:CriteriaBuilder) -> None:
        self.builders[condition_type.lower()] = builder

    def is_known(self, condition_type:Any) -> bool:
        return isinstance(condition_type, str) and condition_type.lower() in self.builders

    def load(self, condition:Any) -> predicates.Criteria[Context]:
        if not isinstance(condition, Mapping):
            self.logger.warning(f'condition must be a table, got {condition!r}')
            return predicates.Literal(False)

        condition_type = condition.get("type")
        if not self.is_known(condition_type):
            self.logger.warning(f'unknown condition type "{condition_type}"')
            return predicates.Literal(False)

        criteria = self.builders[condition_type.lower()](self, condition_params(condition))
        if condition.get("negate"):
            return predicates.Negation(criteria)
        return criteria

    def evaluate(self, condition:Any, context:Context) -> bool:
        try:
            return self.load(condition).evaluate(context)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            self.logger.warning(f'error evaluating condition {condition!r}: {e}')
            return False

    def evaluate_all(self, conditions:Any, context:Context) -> bool:
        """ AND over a list of conditions, an empty or missing list is true """
        if not conditions:
            return True
        if isinstance(conditions, Mapping):
            return self.evaluate(conditions, context)
        if isinstance(conditions, str) or not isinstance(conditions, Sequence):
            self.logger.warning(f'conditions must be a list, got {conditions!r}')
            return False
        return all(self.evaluate(c, context) for c in conditions)

    def validate(self, conditions:Any, path:str="conditions") -> list[str]:
        """ structural check of a condition list, recursing into composites """
        if not isinstance(conditions, Sequence) or isinstance(conditions, str):
            return [f'{path} must be a list']

        errors:list[str] = []
        for i, condition in enumerate(conditions):
            where = f'{path}[{i}]'
            if not isinstance(condition, Mapping):
                errors.append(f'{where} must be a table')
                continue
            condition_type = condition.get("type")
            if not condition_type:
                errors.append(f'{where} missing type')
                continue
            if not self.is_known(condition_type):
                errors.append(f'{where} has unknown type: {condition_type}')
                continue

            p = condition_params(condition)
            if condition_type.lower() in ("and", "or"):
                errors.extend(self.validate(p.get("conditions", []), f'{where}.conditions'))
            elif condition_type.lower() == "not":
                if "condition" in p:
                    errors.extend(self.validate([p["condition"]], f'{where}.condition'))
                else:
                    errors.extend(self.validate(p.get("conditions", []), f'{where}.conditions'))
        return errors


default_evaluator = ConditionEvaluator()

def evaluate(condition:Condition, context:Context) -> bool:
    return default_evaluator.evaluate(condition, context)

def evaluate_all(conditions:Sequence[Condition], context:Context) -> bool:
    return default_evaluator.evaluate_all(conditions, context)
