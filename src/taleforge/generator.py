""" Event generation engine.

Ties together the template pipeline and the rule engine. An EventGenerator
owns all of its state (templates, rules, caches, random generator), nothing
is shared between instances. Code that generates on several threads or
processes should give each its own instance.
"""

import logging
from typing import Any, Optional
from collections.abc import Mapping

import numpy as np

from taleforge import conditions, rules, templates, util
from taleforge.event import Event


class EventGenerator:
    def __init__(
        self,
        seed:Optional[int]=None,
        library:Optional[str]=None,
        enable_rule_engine:bool=True,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.r = np.random.default_rng(seed)
        self.evaluator = conditions.ConditionEvaluator(self.r)
        self.template_system = templates.TemplateSystem(library=library, evaluator=self.evaluator)
        self.rule_engine = rules.RuleEngine(self.evaluator)
        self.enable_rule_engine = enable_rule_engine

    # templates

    def register_template(self, template_id:str, template:Mapping[str, Any], override:bool=False) -> bool:
        return self.template_system.register_template(template_id, template, override=override)

    def unregister_template(self, template_id:str) -> bool:
        return self.template_system.unregister_template(template_id)

    def generate_from_template(self, template_id:str, context:Optional[conditions.Context]=None) -> Optional[Event]:
        """ generates an event and runs it through the rules

        Returns None only if template_id is unknown.
        """
        if context is None:
            context = {}
        event = self.template_system.generate_from_template(template_id, context)
        if event is None:
            return None
        return self.process_event(event, context)

    def generate_random(self, context:Optional[conditions.Context]=None, genre:Optional[str]=None) -> Optional[Event]:
        if context is None:
            context = {}
        event = self.template_system.generate_random(self.r, context, genre)
        if event is None:
            return None
        return self.process_event(event, context)

    def clear_template_caches(self) -> None:
        self.template_system.clear_all_caches()

    def get_template_cache_stats(self) -> dict[str, int]:
        return self.template_system.get_cache_stats()

    # rules

    def add_rule(self, name:str, rule:rules.Rule) -> None:
        self.rule_engine.add_rule(name, rule)

    def remove_rule(self, name:str) -> bool:
        return self.rule_engine.remove_rule(name)

    def get_rules(self) -> dict[str, rules.Rule]:
        return self.rule_engine.get_rules()

    def validate_rule(self, rule:Any) -> util.ValidationResult:
        return self.rule_engine.validate_rule(rule)

    def process_event(self, event:Event, context:conditions.Context) -> Event:
        if not self.enable_rule_engine:
            return event
        return self.rule_engine.process_event(event, context)
