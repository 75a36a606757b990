""" Two tier cache for template processing and event generation.

The processed template cache holds the output of resolution, composition
and dynamic fields. Its key buckets the context coarsely: each bucket field
is its literal value or "any" when absent. Contexts that differ only in other
fields (inventory, quests, relationships...) share an entry, so conditions on
those fields inside composition or dynamic fields can be masked by a hit.

The generation cache holds events keyed on an exact serialization of more
context fields, together with the processed template they came from so
conditional choices can be filtered again for each caller. A hit returns a
copy of the cached event with a fresh id. Event content (choices, tags) is
copied deeply, the context snapshot only shallowly since it may hold caller
objects (custom condition callables and whatever they are bound to).

Both are owned by one engine instance and invalidated per template id.
"""

import copy
import enum
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from taleforge import config, event, store, util


class CacheCounter(enum.IntEnum):
    TEMPLATE_HIT = 0
    TEMPLATE_MISS = enum.auto()
    GENERATION_HIT = enum.auto()
    GENERATION_MISS = enum.auto()
    INVALIDATED = enum.auto()


def copy_event(e:event.Event, event_id:Optional[str]=None) -> event.Event:
    return event.Event(
        e.title,
        e.description,
        copy.deepcopy(e.choices),
        e.event_type,
        dict(e.context),
        difficulty=e.difficulty,
        tags=list(e.tags),
        event_id=event_id if event_id is not None else e.event_id,
        urgency=e.urgency,
    )


def _bucket_value(value:Any) -> str:
    if value is None:
        return "any"
    return str(value)


class TemplateCache:
    def __init__(
        self,
        enabled:Optional[bool]=None,
        bucket_fields:Optional[Sequence[str]]=None,
        generation_fields:Optional[Sequence[str]]=None,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.enabled = enabled if enabled is not None else config.Settings.cache.enabled
        self.bucket_fields = list(bucket_fields if bucket_fields is not None else config.Settings.cache.bucket_fields)
        self.generation_fields = list(generation_fields if generation_fields is not None else config.Settings.cache.generation_fields)

        self.processed_templates:dict[str, store.Template] = {}
        self.generated_events:dict[str, tuple[event.Event, store.Template]] = {}
        self.counters = [0] * len(CacheCounter)

    def template_key(self, template_id:str, context:Mapping[str, Any]) -> str:
        bucket = "|".join(_bucket_value(context.get(f)) for f in self.bucket_fields)
        return f'template:{template_id}:{bucket}'

    def generation_key(self, template_id:str, context:Mapping[str, Any]) -> str:
        relevant = {f: context[f] for f in self.generation_fields if context.get(f) is not None}
        return f'generation:{template_id}:{json.dumps(relevant, sort_keys=True, default=str)}'

    def get_template(self, key:str) -> Optional[store.Template]:
        if not self.enabled:
            return None
        template = self.processed_templates.get(key)
        if template is None:
            self.counters[CacheCounter.TEMPLATE_MISS] += 1
            return None
        self.counters[CacheCounter.TEMPLATE_HIT] += 1
        self.logger.debug(f'processed template cache hit {key}')
        return template

    def put_template(self, key:str, template:store.Template) -> None:
        if self.enabled:
            self.processed_templates[key] = template

    def get_event(self, key:str) -> Optional[tuple[event.Event, store.Template]]:
        """ a fresh copy of the cached event and its processed template """
        if not self.enabled:
            return None
        cached = self.generated_events.get(key)
        if cached is None:
            self.counters[CacheCounter.GENERATION_MISS] += 1
            return None
        self.counters[CacheCounter.GENERATION_HIT] += 1
        self.logger.debug(f'generation cache hit {key}')
        generated, processed = cached
        return copy_event(generated, event.new_event_id()), processed

    def put_event(self, key:str, generated:event.Event, processed:store.Template) -> None:
        # events get modified by rules after they're emitted, keep our own
        if self.enabled:
            self.generated_events[key] = (copy_event(generated), processed)

    def invalidate(self, template_id:str) -> int:
        """ drops every entry generated from template_id """
        prefixes = (f'template:{template_id}:', f'generation:{template_id}:')
        count = 0
        for entries in (self.processed_templates, self.generated_events):
            stale = [k for k in entries if k.startswith(prefixes)]
            for k in stale:
                del entries[k]
            count += len(stale)
        self.counters[CacheCounter.INVALIDATED] += count
        if count:
            self.logger.debug(f'invalidated {count} cache entries for {template_id}')
        return count

    def clear(self) -> None:
        self.processed_templates.clear()
        self.generated_events.clear()

    def stats(self) -> dict[str, int]:
        s = {
            "processed_templates": len(self.processed_templates),
            "generated_events": len(self.generated_events),
        }
        s.update({c.name.lower(): self.counters[c] for c in CacheCounter})
        return s
