""" Taleforge: narrative event generation from templates and rules

Templates are reusable content definitions: a title, a narrative and a list
of choices, each choice carrying stat effects. Templates build on each other
through inheritance (extends), mixins and conditional composition, and adapt
to the caller's context through dynamic fields and conditional choices.

Rules post-process generated events. Each rule has conditions matched
against the context and effects applied to the event when they hold (tags,
title and description edits, effect adjustments, urgency...).

Typical use:

    generator = EventGenerator(seed=0)
    generator.register_template("ambush", {...})
    generator.add_rule("wealthy", {...})
    event = generator.generate_from_template("ambush", {"level": 3, "gold": 250})
"""

from .event import Event
from .conditions import ConditionEvaluator
from .templates import TemplateSystem
from .rules import RuleEngine
from .generator import EventGenerator
