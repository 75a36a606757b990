""" Generated narrative events. """

import uuid
from typing import Any, Optional
from collections.abc import Mapping, MutableMapping

Choice = MutableMapping[str, Any]


def new_event_id() -> str:
    return f'event_{uuid.uuid4().hex}'


class Event:
    """ A concrete event produced from a template for one context.

    Ids are unique per generation call. Everything else may be shared
    (by value) with other events generated from the same template.
    """

    def __init__(
        self,
        title:str,
        description:str,
        choices:list[Choice],
        event_type:str,
        context:MutableMapping[str, Any],
        difficulty:Optional[str]=None,
        tags:Optional[list[str]]=None,
        event_id:Optional[str]=None,
        urgency:Optional[float]=None,
    ) -> None:
        self.event_id = event_id if event_id is not None else new_event_id()
        self.title = title
        self.description = description
        self.choices = choices
        self.event_type = event_type
        self.context = context
        self.difficulty = difficulty
        self.tags:list[str] = tags if tags is not None else []
        self.urgency = urgency

    def __repr__(self) -> str:
        return f'Event({self.event_id!r}, {self.title!r})'

    def to_dict(self) -> dict[str, Any]:
        d = {
            "id": self.event_id,
            "title": self.title,
            "description": self.description,
            "choices": self.choices,
            "type": self.event_type,
            "context": self.context,
            "difficulty": self.difficulty,
            "tags": self.tags,
        }
        if self.urgency is not None:
            d["urgency"] = self.urgency
        return d

    @staticmethod
    def from_dict(data:Mapping[str, Any]) -> "Event":
        return Event(
            data.get("title", ""),
            data.get("description", ""),
            list(data.get("choices") or []),
            data.get("type", ""),
            dict(data.get("context") or {}),
            difficulty=data.get("difficulty"),
            tags=list(data.get("tags") or []),
            event_id=data.get("id"),
            urgency=data.get("urgency"),
        )
