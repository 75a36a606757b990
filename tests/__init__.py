from typing import Any, Optional, Union
from collections.abc import Mapping

from taleforge.event import Event

def make_template(
        title:str="A Quiet Road",
        narrative:str="Nothing stirs on the road ahead.",
        choices:Optional[list[dict[str, Any]]]=None,
        **kwargs:Any) -> dict[str, Any]:
    template:dict[str, Any] = {
        "title": title,
        "narrative": narrative,
        "choices": choices if choices is not None else [{"text": "Walk on", "effect": {}}],
    }
    template.update(kwargs)
    return template

def make_choice(text:str, **effect:float) -> dict[str, Any]:
    return {"text": text, "effect": dict(effect)}

def make_event(choices:Optional[list[dict[str, Any]]]=None, tags:Optional[list[str]]=None) -> Event:
    return Event(
        "Ambush!",
        "Bandits leap from the trees.",
        choices if choices is not None else [make_choice("Fight", gold=5, health=-10)],
        "COMBAT",
        {},
        difficulty="normal",
        tags=tags if tags is not None else ["combat"],
    )

def choice_texts(x:Union[Event, Mapping[str, Any], list]) -> list[str]:
    if isinstance(x, Event):
        choices = x.choices
    elif isinstance(x, Mapping):
        choices = x["choices"]
    else:
        choices = x
    return [c["text"] for c in choices]

def stat(field:str, operator:str, value:Any, **kwargs:Any) -> dict[str, Any]:
    return dict(type="stat_requirement", field=field, operator=operator, value=value, **kwargs)
