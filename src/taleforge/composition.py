""" Dynamic template composition.

A template's composition entries each name a component template, a
priority, optional conditions and a merge strategy. Entries are applied in
ascending priority order, skipping those whose conditions do not hold.
"""

import logging
from collections.abc import Mapping
from typing import Any

from taleforge import conditions, resolver, store, util

logger = logging.getLogger(__name__)

DEFAULT_MERGE_STRATEGY = "merge"

# resolution metadata, never copied from a component
STRUCTURAL_KEYS = ("id", "extends", "mixins", "composition")


def apply_component(template:Mapping[str, Any], component:Mapping[str, Any], strategy:str) -> store.Template:
    content = {k:v for k,v in component.items() if k not in STRUCTURAL_KEYS}
    t_choices = util.as_list(template.get("choices"))
    t_tags = util.as_list(template.get("tags"))
    c_choices = util.as_list(component.get("choices"))
    c_tags = util.as_list(component.get("tags"))

    if strategy == "append":
        return {**template, "choices": t_choices + c_choices, "tags": t_tags + c_tags}
    elif strategy == "prepend":
        return {**template, "choices": c_choices + t_choices, "tags": c_tags + t_tags}
    elif strategy == "replace":
        return {**template, **content}

    if strategy != "merge":
        logger.warning(f'unknown merge strategy "{strategy}", merging')
    return {**template, **content, "choices": t_choices + c_choices, "tags": t_tags + c_tags}


def _priority(entry:Mapping[str, Any]) -> float:
    priority = entry.get("priority", 0)
    return priority if util.is_number(priority) else 0


class Composer:
    def __init__(
        self,
        template_store:store.TemplateStore,
        template_resolver:resolver.TemplateResolver,
        evaluator:conditions.ConditionEvaluator,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.store = template_store
        self.resolver = template_resolver
        self.evaluator = evaluator

    def compose(self, template:store.Template, context:conditions.Context) -> store.Template:
        entries = [e for e in util.as_list(template.get("composition")) if isinstance(e, Mapping)]
        if not entries:
            return template

        composed = dict(template)
        # sorted is stable, equal priorities keep declaration order
        for entry in sorted(entries, key=_priority):
            component_id = entry.get("template_id")
            if entry.get("conditions") and not self.evaluator.evaluate_all(entry["conditions"], context):
                self.logger.debug(f'composition of "{component_id}" skipped, conditions not met')
                continue

            component = self.store.get(component_id) if isinstance(component_id, str) else None
            if component is None:
                self.logger.warning(f'component template "{component_id}" not found, skipping')
                continue

            composed = apply_component(
                composed,
                self.resolver.resolve(component, component_id),
                entry.get("merge_strategy") or DEFAULT_MERGE_STRATEGY,
            )

        return composed
