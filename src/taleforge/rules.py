""" Rule engine: post-processes generated events.

A rule is a table:

    {
        "conditions": [{"type": "stat_greater_than", "params": {"stat": "gold", "value": 100}}],
        "effects": {"addTags": ["wealthy"], "modifyTitle": {"prepend": "Lucrative: "}},
        "priority": 10,
        "enabled": True,
    }

Rules are kept by name. process_event runs the enabled rules in descending
priority (ties keep insertion order), and every rule whose conditions all
hold applies its effects to the event in place, so lower priority rules see
what higher priority ones did.

Unknown condition types evaluate to False and unknown effect types are
skipped, both with a warning. Nothing here raises for malformed rules.
"""

import logging
import math
from collections.abc import Mapping, MutableMapping
from typing import Any, Callable, Optional

from taleforge import conditions, config, util
from taleforge.event import Event

Rule = MutableMapping[str, Any]
EffectApplicator = Callable[[Event, Any], None]


def _modify_text(text:str, params:Mapping[str, Any]) -> str:
    # precedence: append, then prepend, then replace wins outright
    if params.get("append"):
        text = text + params["append"]
    if params.get("prepend"):
        text = params["prepend"] + text
    if params.get("replace"):
        text = params["replace"]
    return text

def _add_tags(event:Event, params:Any) -> None:
    event.tags.extend(util.as_list(params))

def _modify_title(event:Event, params:Mapping[str, Any]) -> None:
    event.title = _modify_text(event.title, params)

def _modify_description(event:Event, params:Mapping[str, Any]) -> None:
    event.description = _modify_text(event.description, params)

def _adjust_effects(event:Event, params:Mapping[str, Any]) -> None:
    """ adds deltas to matching numeric keys of every choice's effect """
    for choice in event.choices:
        effect = choice.get("effect")
        if not isinstance(effect, MutableMapping):
            continue
        for key, delta in params.items():
            if key in effect and util.is_number(effect[key]):
                effect[key] += delta

def _modify_choices(event:Event, params:Mapping[str, Any]) -> None:
    for choice in event.choices:
        effect = choice.setdefault("effect", {})
        for key, multiplier in (params.get("multiply") or {}).items():
            if effect.get(key):
                # halves round up
                effect[key] = math.floor(effect[key] * multiplier + 0.5)
        for key, value in (params.get("add") or {}).items():
            effect[key] = effect.get(key, 0) + value

def _modify_difficulty(event:Event, params:Any) -> None:
    event.difficulty = params

def _set_urgency(event:Event, params:Any) -> None:
    event.urgency = params

def _add_context(event:Event, params:Mapping[str, Any]) -> None:
    event.context.update(params)

BUILTIN_APPLICATORS:Mapping[str, EffectApplicator] = {
    "addTags": _add_tags,
    "modifyTitle": _modify_title,
    "modifyDescription": _modify_description,
    "adjustEffects": _adjust_effects,
    "modifyChoices": _modify_choices,
    "modifyDifficulty": _modify_difficulty,
    "setUrgency": _set_urgency,
    "addContext": _add_context,
}


class RuleEngine:
    def __init__(
        self,
        evaluator:Optional[conditions.ConditionEvaluator]=None,
        default_priority:Optional[float]=None,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.evaluator = evaluator if evaluator is not None else conditions.ConditionEvaluator()
        self.default_priority = default_priority if default_priority is not None else config.Settings.rules.default_priority
        self.rules:dict[str, Rule] = {}
        self.applicators:dict[str, EffectApplicator] = dict(BUILTIN_APPLICATORS)

    # rule management

    def add_rule(self, name:str, rule:Rule) -> None:
        self.rules[name] = rule

    def remove_rule(self, name:str) -> bool:
        if name not in self.rules:
            return False
        del self.rules[name]
        return True

    def get_rule(self, name:str) -> Optional[Rule]:
        return self.rules.get(name)

    def get_rules(self) -> dict[str, Rule]:
        return dict(self.rules)

    def clear_rules(self) -> None:
        self.rules.clear()

    def add_condition_evaluator(self, condition_type:str, builder:conditions.CriteriaBuilder) -> None:
        self.evaluator.register(condition_type, builder)

    def add_effect_applicator(self, effect_type:str, applicator:EffectApplicator) -> None:
        self.applicators[effect_type] = applicator

    def validate_rule(self, rule:Any) -> util.ValidationResult:
        if not isinstance(rule, Mapping):
            return util.ValidationResult(False, ["Rule must be a table"])

        errors:list[str] = []
        if "conditions" not in rule:
            errors.append("Rule must have conditions list")
        else:
            errors.extend(self.evaluator.validate(rule["conditions"]))

        if not isinstance(rule.get("effects"), Mapping):
            errors.append("Rule must have effects table")

        return util.ValidationResult.from_errors(errors)

    # evaluation

    def priority(self, rule:Mapping[str, Any]) -> float:
        priority = rule.get("priority", self.default_priority)
        if not util.is_number(priority):
            self.logger.warning(f'bad rule priority {priority!r}, using {self.default_priority}')
            return self.default_priority
        return priority

    def active_rules(self) -> list[tuple[str, Rule]]:
        """ enabled rules, highest priority first, ties in insertion order """
        enabled = [(name, rule) for name, rule in self.rules.items() if isinstance(rule, Mapping) and rule.get("enabled", True)]
        return sorted(enabled, key=lambda x: -self.priority(x[1]))

    def evaluate_rule(self, rule:Mapping[str, Any], context:conditions.Context) -> bool:
        if not rule.get("enabled", True):
            return False
        return self.evaluator.evaluate_all(rule.get("conditions") or [], context)

    def apply_effects(self, event:Event, effects:Any, rule_name:str="") -> None:
        if not isinstance(effects, Mapping):
            self.logger.warning(f'rule {rule_name} effects must be a table, got {effects!r}')
            return

        for effect_type, params in effects.items():
            applicator = self.applicators.get(effect_type)
            if applicator is None:
                self.logger.warning(f'rule {rule_name} has unknown effect type "{effect_type}"')
                continue
            try:
                applicator(event, params)
            except (TypeError, ValueError, KeyError, AttributeError) as e:
                self.logger.warning(f'rule {rule_name} failed to apply {effect_type}: {e}')

    def process_event(self, event:Event, context:conditions.Context) -> Event:
        for name, rule in self.active_rules():
            if self.evaluate_rule(rule, context):
                self.logger.debug(f'rule {name} matched {event}')
                self.apply_effects(event, rule.get("effects"), name)
        return event

    def get_stats(self) -> dict[str, int]:
        return {
            "total_rules": len(self.rules),
            "condition_types": len(self.evaluator.builders),
            "effect_types": len(self.applicators),
        }
