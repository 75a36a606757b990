""" Template registration and the template to event pipeline.

generate_from_template runs a template through:

 * inheritance and mixin resolution
 * composition
 * dynamic fields
   (the above three are memoized in the processed template cache)
 * event construction (memoized in the generation cache)
 * conditional choice filtering, on every call

Every stage skips what it cannot use and carries on. The only failure is an
unknown template id, which yields None.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any, Optional

import numpy as np

from taleforge import cache, composition, conditions, config, fields, resolver, store, util
from taleforge.event import Event


class TemplateSystem:
    def __init__(
        self,
        library:Optional[str]=None,
        evaluator:Optional[conditions.ConditionEvaluator]=None,
        template_cache:Optional[cache.TemplateCache]=None,
        fallback_choice_text:Optional[str]=None,
        default_type:Optional[str]=None,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.store = store.TemplateStore(library)
        self.evaluator = evaluator if evaluator is not None else conditions.ConditionEvaluator()
        self.resolver = resolver.TemplateResolver(self.store)
        self.composer = composition.Composer(self.store, self.resolver, self.evaluator)
        self.cache = template_cache if template_cache is not None else cache.TemplateCache()
        self.fallback_choice_text = fallback_choice_text if fallback_choice_text is not None else config.Settings.templates.fallback_choice_text
        self.default_type = default_type if default_type is not None else config.Settings.templates.default_type

    # template registration

    def register_template(self, template_id:str, template:Mapping[str, Any], override:bool=False) -> bool:
        """ Adds a custom template.

        Returns False if the template fails validation or the id is already
        registered (unless override is set).
        """
        validation = store.validate_template(template)
        if not validation.valid:
            self.logger.warning(f'invalid template structure for "{template_id}": {validation.errors}')
            return False

        if self.store.is_custom(template_id) and not override:
            self.logger.warning(f'template "{template_id}" already registered')
            return False

        self.store.add_custom(template_id, copy.deepcopy(dict(template)))
        self.invalidate(template_id)
        return True

    def unregister_template(self, template_id:str) -> bool:
        if not self.store.remove_custom(template_id):
            self.logger.warning(f'template "{template_id}" is not a registered custom template')
            return False
        self.invalidate(template_id)
        return True

    def add_library_template(self, genre:str, template_id:str, template:Mapping[str, Any]) -> bool:
        """ Adds a template to a genre library as "<genre>:<template_id>". """
        validation = store.validate_template(template)
        if not validation.valid:
            self.logger.warning(f'invalid template structure for "{genre}:{template_id}": {validation.errors}')
            return False

        key = f'{genre}:{template_id}'
        self.store.add(key, copy.deepcopy(dict(template)))
        for short_id in self.store.short_ids(key):
            self.invalidate(short_id)
        return True

    def invalidate(self, template_id:str) -> None:
        """ purges cache entries for template_id and templates built on it """
        self.cache.invalidate(template_id)
        for dependent_id in self.store.dependents(template_id):
            self.cache.invalidate(dependent_id)

    # generation

    def process_template(self, template_id:str, template:store.Template, context:conditions.Context) -> store.Template:
        """ resolution, composition and dynamic fields, memoized by bucket """
        key = self.cache.template_key(template_id, context)
        processed = self.cache.get_template(key)
        if processed is not None:
            return processed

        processed = self.resolver.resolve(template, template_id)
        processed = self.composer.compose(processed, context)
        processed = fields.apply_dynamic_fields(processed, context, self.evaluator)

        self.cache.put_template(key, processed)
        return processed

    def generate_from_template(self, template_id:str, context:Optional[conditions.Context]=None) -> Optional[Event]:
        if context is None:
            context = {}

        template = self.store.get(template_id)
        if template is None:
            self.logger.warning(f'template "{template_id}" not found')
            return None

        generation_key = self.cache.generation_key(template_id, context)
        cached = self.cache.get_event(generation_key)
        if cached is not None:
            event, processed = cached
        else:
            processed = self.process_template(template_id, template, context)
            event = Event(
                processed.get("title", ""),
                processed.get("narrative", ""),
                [],
                processed.get("type") or self.default_type,
                dict(context),
                difficulty=processed.get("difficulty"),
                tags=list(util.as_list(processed.get("tags"))),
            )
            self.cache.put_event(generation_key, event, processed)

        # choice conditions may read context outside the generation key
        choices = fields.filter_choices(processed, context, self.evaluator, self.fallback_choice_text)
        event.choices = copy.deepcopy(choices)
        return event

    def available_templates(self, context:conditions.Context, genre:Optional[str]=None) -> list[str]:
        """ ids of templates whose (inherited) template level conditions hold """
        available = []
        for key, template in list(self.store.items()):
            if genre is not None and not key.startswith(f'{genre}:'):
                continue
            template_id = self.store.short_ids(key)[-1]
            resolved = self.resolver.resolve(template, template_id)
            if self.evaluator.evaluate_all(resolved.get("conditions") or [], context):
                available.append(template_id)
        return available

    def generate_random(self, r:np.random.Generator, context:Optional[conditions.Context]=None, genre:Optional[str]=None) -> Optional[Event]:
        if context is None:
            context = {}
        candidates = self.available_templates(context, genre)
        if not candidates:
            self.logger.warning(f'no templates available for genre {genre}')
            return None
        return self.generate_from_template(candidates[r.integers(len(candidates))], context)

    # inspection

    def get_custom_templates(self) -> list[str]:
        return sorted(self.store.custom)

    def get_available_templates(self) -> dict[str, dict[str, dict[str, Any]]]:
        """ template summaries grouped by genre ("custom" for registered ones) """
        summaries:dict[str, dict[str, dict[str, Any]]] = {}
        for key, template in self.store.items():
            genre, _, template_id = key.rpartition(":")
            summaries.setdefault(genre, {})[template_id] = {
                "title": template.get("title"),
                "type": template.get("type"),
                "difficulty": template.get("difficulty"),
                "tags": template.get("tags"),
            }
        return summaries

    def get_loaded_templates(self) -> dict[str, store.Template]:
        return dict(self.store.items())

    def has_template(self, template_id:str) -> bool:
        return template_id in self.store

    def get_stats(self) -> dict[str, Any]:
        return {
            "custom_templates": len(self.store.custom),
            "loaded_templates": len(self.store),
            "genres": self.store.genres(),
            "template_library": self.store.library,
        }

    def clear_all_caches(self) -> None:
        self.cache.clear()

    def get_cache_stats(self) -> dict[str, int]:
        return self.cache.stats()
