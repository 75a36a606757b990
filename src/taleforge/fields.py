""" Context dependent fields and choices of a template. """

import logging
from collections.abc import Mapping
from typing import Any, Optional

from taleforge import conditions, config, store, util
from taleforge.event import Choice

logger = logging.getLogger(__name__)


def apply_dynamic_fields(
    template:store.Template,
    context:conditions.Context,
    evaluator:conditions.ConditionEvaluator,
) -> store.Template:
    """ Sets title, narrative or a choice's text from conditional values.

    A field spec sets its target to value_if_true when its conditions hold
    and to value_if_false otherwise. An empty or missing value leaves the
    target unchanged, as does a choice_index out of range.
    """
    specs = util.as_list(template.get("dynamic_fields"))
    if not specs:
        return template

    result = dict(template)
    result["choices"] = [dict(c) if isinstance(c, Mapping) else c for c in util.as_list(template.get("choices"))]

    for spec in specs:
        if not isinstance(spec, Mapping):
            logger.warning(f'dynamic field must be a table, got {spec!r}')
            continue

        if evaluator.evaluate_all(spec.get("conditions") or [], context):
            value = spec.get("value_if_true")
        else:
            value = spec.get("value_if_false")
        if not value:
            continue

        target = spec.get("field")
        if target in ("title", "narrative"):
            result[target] = value
        elif target == "choice_text":
            index = spec.get("choice_index")
            if isinstance(index, int) and 0 <= index < len(result["choices"]):
                result["choices"][index]["text"] = value
        else:
            logger.warning(f'unknown dynamic field target "{target}"')

    return result


def filter_choices(
    template:Mapping[str, Any],
    context:conditions.Context,
    evaluator:conditions.ConditionEvaluator,
    fallback_text:Optional[str]=None,
) -> list[Choice]:
    """ Drops choices whose conditional visibility does not hold.

    show_when (default true) shows the choice when its conditions hold,
    false shows it only when they do not. Choices without a spec are always
    shown. If nothing survives a single fallback choice is returned.
    """
    choices = util.as_list(template.get("choices"))

    specs:dict[int, Mapping[str, Any]] = {}
    for index, spec in store.conditional_choice_specs(template.get("conditional_choices")):
        if index is not None:
            specs.setdefault(index, spec)

    shown:list[Choice] = []
    for i, choice in enumerate(choices):
        spec = specs.get(i)
        if spec is None:
            shown.append(choice)
            continue

        met = evaluator.evaluate_all(spec.get("conditions") or [], context)
        if spec.get("show_when", True) is False:
            met = not met
        if met:
            shown.append(choice)

    if not shown:
        if fallback_text is None:
            fallback_text = config.Settings.templates.fallback_choice_text
        shown.append({"text": fallback_text, "effect": {}})

    return shown
