""" Template inheritance and mixin resolution.

A template may extend one or more parents (extends: id or [ids]) and pull in
mixins (mixins: [ids]). Resolution linearizes the ancestors with a depth
first traversal (each id visited once, so cycles and diamonds terminate),
merges them from the most distant ancestor down to the template itself and
finally applies mixins in declaration order.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any, Optional

from taleforge import store, util

# these inherit from the nearest template that defines them, never concatenate
OVERRIDE_KEYS = ("conditions", "conditional_choices", "dynamic_fields", "composition")


def _override(child:Mapping[str, Any], parent:Mapping[str, Any], merged:dict[str, Any], keys:tuple[str, ...]) -> None:
    for key in keys:
        value = child.get(key)
        if value is None:
            value = parent.get(key)
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value


def _choice_text(choice:Any) -> Any:
    if isinstance(choice, Mapping):
        return choice.get("text")
    return repr(choice)


def merge_inherited(parent:Mapping[str, Any], child:Mapping[str, Any]) -> store.Template:
    """ child scalars win, choices and tags concatenate parent first """
    merged = {**parent, **child}
    merged["choices"] = util.as_list(parent.get("choices")) + util.as_list(child.get("choices"))
    merged["tags"] = util.as_list(parent.get("tags")) + util.as_list(child.get("tags"))
    _override(child, parent, merged, OVERRIDE_KEYS)
    return merged


def apply_mixin(template:Mapping[str, Any], mixin:Mapping[str, Any]) -> store.Template:
    """ mixin supplies defaults, the template wins on conflict

    Choices are deduplicated by text (first occurrence wins) and tags are
    deduplicated, unlike the plain inheritance merge.
    """
    merged = {**mixin, **template}
    merged["choices"] = util.unique(
        util.as_list(template.get("choices")) + util.as_list(mixin.get("choices")),
        key=_choice_text,
    )
    merged["tags"] = util.unique(util.as_list(mixin.get("tags")) + util.as_list(template.get("tags")))
    _override(template, mixin, merged, ("conditions", "conditional_choices", "dynamic_fields"))
    for key in ("extends", "mixins", "composition"):
        if key in template:
            merged[key] = template[key]
        else:
            merged.pop(key, None)
    return merged


class TemplateResolver:
    def __init__(self, template_store:store.TemplateStore) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.store = template_store

    def inheritance_chain(self, template:Mapping[str, Any], template_id:Optional[str]=None) -> list[str]:
        """ ancestor ids ordered from most distant to nearest

        Parents are visited in declaration order, each of them after its own
        ancestors. An id is visited at most once, the template itself
        included, so cyclic graphs terminate.
        """
        chain:list[str] = []
        visited:set[str] = set()
        if template_id is not None:
            visited.add(template_id)

        def visit(parent_ids:list[str]) -> None:
            for parent_id in parent_ids:
                if parent_id in visited:
                    continue
                visited.add(parent_id)
                parent = self.store.get(parent_id)
                if parent is None:
                    self.logger.warning(f'parent template "{parent_id}" not found, skipping')
                    continue
                visit(store.parents(parent))
                chain.append(parent_id)

        visit(store.parents(template))
        return chain

    def resolve(self, template:Mapping[str, Any], template_id:Optional[str]=None) -> store.Template:
        """ returns a new, fully merged template, the input is not modified """
        resolved:store.Template = {}
        for parent_id in self.inheritance_chain(template, template_id):
            parent = self.store.get(parent_id)
            assert parent is not None
            resolved = merge_inherited(resolved, parent)
        resolved = merge_inherited(resolved, template)

        for mixin_id in util.as_list(resolved.get("mixins")):
            mixin = self.store.get(mixin_id) if isinstance(mixin_id, str) else None
            if mixin is None:
                self.logger.warning(f'mixin template "{mixin_id}" not found, skipping')
                continue
            resolved = apply_mixin(resolved, mixin)

        # merged lists still share choice tables with the store
        return copy.deepcopy(resolved)
