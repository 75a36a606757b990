""" Loading templates and rules from TOML (or JSON) documents.

A template document has one top level table per template id:

    [ambush]
    title = "Ambush!"
    narrative = "Bandits leap from the trees."
    extends = "road_event"
    tags = ["combat"]

    [[ambush.choices]]
    text = "Fight"
    effect = { health = -10, gold = 20 }

    [[ambush.choices]]
    text = "Flee"
    effect = { reputation = -5 }

A rule document has one top level table per rule name:

    [wealthy]
    priority = 10
    conditions = [{ type = "stat_greater_than", params = { stat = "gold", value = 100 } }]
    effects = { addTags = ["wealthy"] }

Documents that do not decode raise ValueError. Individual templates or rules
that fail validation are skipped with a warning and reported by name.
"""

import json
import logging
import pathlib
from collections.abc import Mapping
from typing import Any, Optional, Union

import toml # type: ignore

from taleforge import rules, templates

logger = logging.getLogger(__name__)

LIBRARY_SUFFIXES = (".toml", ".json")


def loads(data:str) -> dict[str, Any]:
    try:
        return toml.loads(data)
    except toml.TomlDecodeError as e:
        raise ValueError(f'could not decode toml: {e}') from e


def loadd_templates(
    template_system:templates.TemplateSystem,
    template_data:Mapping[str, Any],
    genre:Optional[str]=None,
) -> list[str]:
    """
    Loads templates from a dict of template id to template.

    Parameters
    ----------
    template_system : TemplateSystem
        system to register the templates with
    template_data : dict
        keys are template ids, values are the templates
    genre : str, optional
        library to add the templates to, custom templates if not given

    Returns
    -------
    out : list of str
        ids of templates that were rejected
    """
    if not isinstance(template_data, Mapping):
        raise ValueError(f'template data must be a table, got {type(template_data)}')

    rejected = []
    for template_id, template in template_data.items():
        if genre is None:
            ok = template_system.register_template(template_id, template)
        else:
            ok = template_system.add_library_template(genre, template_id, template)
        if not ok:
            rejected.append(template_id)
    if rejected:
        logger.warning(f'rejected templates {rejected}')
    return rejected


def loads_templates(template_system:templates.TemplateSystem, data:str, genre:Optional[str]=None) -> list[str]:
    return loadd_templates(template_system, loads(data), genre)


def loadd_rules(rule_engine:rules.RuleEngine, rule_data:Mapping[str, Any]) -> list[str]:
    """ adds every valid rule in rule_data, returns names of rejected rules """
    if not isinstance(rule_data, Mapping):
        raise ValueError(f'rule data must be a table, got {type(rule_data)}')

    rejected = []
    for name, rule in rule_data.items():
        validation = rule_engine.validate_rule(rule)
        if not validation.valid:
            logger.warning(f'rejected rule {name}: {validation.errors}')
            rejected.append(name)
            continue
        rule_engine.add_rule(name, rule)
    return rejected


def loads_rules(rule_engine:rules.RuleEngine, data:str) -> list[str]:
    return loadd_rules(rule_engine, loads(data))


def load_template_library(
    template_system:templates.TemplateSystem,
    genre:str,
    directory:Union[str, pathlib.Path],
) -> int:
    """ Loads each .toml/.json file in directory as template "<genre>:<stem>".

    Files that cannot be read or decoded are skipped with a warning. Returns
    the number of templates loaded.
    """
    path = pathlib.Path(directory)
    if not path.is_dir():
        logger.warning(f'template library directory {path} not found for genre {genre}')
        return 0

    loaded = 0
    for template_path in sorted(path.iterdir()):
        if template_path.suffix not in LIBRARY_SUFFIXES:
            continue
        try:
            with open(template_path, "rt", encoding="utf-8") as f:
                if template_path.suffix == ".json":
                    template = json.load(f)
                else:
                    template = toml.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f'failed to load template {template_path}: {e}')
            continue

        if template_system.add_library_template(genre, template_path.stem, template):
            loaded += 1

    logger.info(f'loaded {loaded} templates from genre {genre}')
    return loaded
