""" In-memory template store and structural template validation.

Templates are plain tables (see the README for the fields). They reference
each other only by id (extends, mixins, composition), never by object, so
the store is the single table every lookup goes through.

Custom templates are stored under "custom:<id>", genre libraries under
"<genre>:<id>".
"""

from collections.abc import Mapping, Sequence
from typing import Any, Optional, Iterable

from taleforge import config, util

Template = dict[str, Any]

CUSTOM_NAMESPACE = "custom"

MERGE_STRATEGIES = ("append", "prepend", "replace", "merge")
DYNAMIC_FIELD_TARGETS = ("title", "narrative", "choice_text")


def parents(template:Mapping[str, Any]) -> list[str]:
    """ extends may be a single id or a list of ids """
    return [x for x in util.as_list(template.get("extends")) if isinstance(x, str)]


def references(template:Mapping[str, Any]) -> list[str]:
    """ every template id this template pulls content from """
    refs = parents(template)
    refs.extend(x for x in util.as_list(template.get("mixins")) if isinstance(x, str))
    for entry in util.as_list(template.get("composition")):
        if isinstance(entry, Mapping) and isinstance(entry.get("template_id"), str):
            refs.append(entry["template_id"])
    return refs


def _validate_choices(choices:Any, errors:list[str]) -> None:
    if not isinstance(choices, Sequence) or isinstance(choices, str):
        errors.append("Template choices must be a list")
        return
    if len(choices) == 0:
        errors.append("Template must have at least one choice")
    for i, choice in enumerate(choices):
        if not isinstance(choice, Mapping):
            errors.append(f'Choice {i} must be a table')
            continue
        if not isinstance(choice.get("text"), str) or not choice["text"]:
            errors.append(f'Choice {i} must have a text property')
        effect = choice.get("effect", {})
        if not isinstance(effect, Mapping):
            errors.append(f'Choice {i} effect must be a table')
        elif not all(util.is_number(v) for v in effect.values()):
            errors.append(f'Choice {i} effect values must be numbers')


def validate_template(template:Any, difficulties:Optional[Sequence[str]]=None) -> util.ValidationResult:
    """ Checks the structure of a template before it is registered.

    Never raises, problems are reported in the result's errors.
    """
    if not isinstance(template, Mapping):
        return util.ValidationResult(False, ["Template must be a table"])

    if difficulties is None:
        difficulties = config.Settings.templates.difficulties

    errors:list[str] = []
    for field in ("title", "narrative"):
        if not isinstance(template.get(field), str) or not template[field].strip():
            errors.append(f'Template must have {field}')

    if "choices" not in template:
        errors.append("Template must have choices")
    else:
        _validate_choices(template["choices"], errors)
    n_choices = len(template["choices"]) if isinstance(template.get("choices"), (list, tuple)) else 0

    difficulty = template.get("difficulty")
    if difficulty is not None and difficulty not in difficulties:
        errors.append(f'Difficulty must be one of: {", ".join(difficulties)}')

    tags = template.get("tags")
    if tags is not None and (not isinstance(tags, Sequence) or isinstance(tags, str)):
        errors.append("Template tags must be a list")

    for i, (index, cc) in enumerate(conditional_choice_specs(template.get("conditional_choices"))):
        if index is None or index < 0 or index >= n_choices:
            errors.append(f'Conditional choice {i} references invalid choice index {index}')
        if not cc.get("conditions"):
            errors.append(f'Conditional choice {i} must have at least one condition')

    for i, df in enumerate(util.as_list(template.get("dynamic_fields"))):
        if not isinstance(df, Mapping):
            errors.append(f'Dynamic field {i} must be a table')
            continue
        if df.get("field") not in DYNAMIC_FIELD_TARGETS:
            errors.append(f"Dynamic field {i} has invalid field type '{df.get('field')}'")
        if df.get("field") == "choice_text":
            choice_index = df.get("choice_index")
            if choice_index is None:
                errors.append(f"Dynamic field {i} with field 'choice_text' must specify choice_index")
            elif not isinstance(choice_index, int) or choice_index < 0 or choice_index >= n_choices:
                errors.append(f'Dynamic field {i} references invalid choice index {choice_index}')
        if not df.get("conditions"):
            errors.append(f'Dynamic field {i} must have at least one condition')

    for i, comp in enumerate(util.as_list(template.get("composition"))):
        if not isinstance(comp, Mapping):
            errors.append(f'Composition {i} must be a table')
            continue
        if not comp.get("template_id"):
            errors.append(f'Composition {i} must specify template_id')
        strategy = comp.get("merge_strategy")
        if strategy is not None and strategy not in MERGE_STRATEGIES:
            errors.append(f"Composition {i} has invalid merge_strategy '{strategy}'")

    return util.ValidationResult.from_errors(errors)


def conditional_choice_specs(conditional_choices:Any) -> list[tuple[Optional[int], Mapping[str, Any]]]:
    """ normalizes conditional choices to (choice index, spec) pairs

    Accepts the list form [{"choice_index": 0, ...}] and the table form
    {"0": {...}} (TOML tables can only have string keys).
    """
    specs:list[tuple[Optional[int], Mapping[str, Any]]] = []
    if isinstance(conditional_choices, Mapping):
        for k, spec in conditional_choices.items():
            if not isinstance(spec, Mapping):
                continue
            try:
                specs.append((int(k), spec))
            except ValueError:
                specs.append((None, spec))
    else:
        for spec in util.as_list(conditional_choices):
            if not isinstance(spec, Mapping):
                continue
            index = spec.get("choice_index")
            specs.append((index if isinstance(index, int) else None, spec))
    return specs


class TemplateStore:
    """ Table of templates by id. """

    def __init__(self, library:Optional[str]=None) -> None:
        self.library = library
        self.templates:dict[str, Template] = {}
        self.custom:set[str] = set()

    def __len__(self) -> int:
        return len(self.templates)

    def __contains__(self, template_id:str) -> bool:
        return self.lookup_key(template_id) is not None

    def lookup_key(self, template_id:str) -> Optional[str]:
        """ resolves an id to its storage key

        custom templates first, then the default library, then the literal id
        """
        if template_id in self.custom:
            return f'{CUSTOM_NAMESPACE}:{template_id}'
        if self.library and f'{self.library}:{template_id}' in self.templates:
            return f'{self.library}:{template_id}'
        if template_id in self.templates:
            return template_id
        return None

    def get(self, template_id:str) -> Optional[Template]:
        key = self.lookup_key(template_id)
        if key is None:
            return None
        return self.templates[key]

    def add(self, key:str, template:Template) -> None:
        self.templates[key] = template

    def add_custom(self, template_id:str, template:Template) -> None:
        self.custom.add(template_id)
        self.templates[f'{CUSTOM_NAMESPACE}:{template_id}'] = template

    def remove_custom(self, template_id:str) -> bool:
        if template_id not in self.custom:
            return False
        self.custom.remove(template_id)
        del self.templates[f'{CUSTOM_NAMESPACE}:{template_id}']
        return True

    def is_custom(self, template_id:str) -> bool:
        return template_id in self.custom

    def items(self) -> Iterable[tuple[str, Template]]:
        return self.templates.items()

    def short_ids(self, key:str) -> list[str]:
        """ all the ids a caller might use to reach the template at key """
        namespace, sep, rest = key.partition(":")
        if not sep:
            return [key]
        if namespace == CUSTOM_NAMESPACE:
            return [rest]
        if namespace == self.library:
            return [key, rest]
        return [key]

    def dependents(self, template_id:str) -> set[str]:
        """ ids of templates that (transitively) pull content from template_id """
        found:set[str] = set()
        frontier = [template_id]
        while frontier:
            target = frontier.pop()
            for key, template in self.templates.items():
                if target not in references(template):
                    continue
                for short_id in self.short_ids(key):
                    if short_id not in found and short_id != template_id:
                        found.add(short_id)
                        frontier.append(short_id)
        return found

    def genres(self) -> list[str]:
        return sorted(set(key.partition(":")[0] for key in self.templates if ":" in key))
