import logging

import pytest
import numpy as np

from taleforge import conditions, templates, rules, generator, store, resolver

# some logging to turn on if we like
#logging.getLogger("taleforge.templates").level = logging.DEBUG
#logging.getLogger("taleforge.cache").level = logging.DEBUG

@pytest.fixture
def evaluator() -> conditions.ConditionEvaluator:
    return conditions.ConditionEvaluator(np.random.default_rng(0))

@pytest.fixture
def template_store() -> store.TemplateStore:
    return store.TemplateStore()

@pytest.fixture
def template_resolver(template_store:store.TemplateStore) -> resolver.TemplateResolver:
    return resolver.TemplateResolver(template_store)

@pytest.fixture
def template_system(evaluator:conditions.ConditionEvaluator) -> templates.TemplateSystem:
    return templates.TemplateSystem(evaluator=evaluator)

@pytest.fixture
def rule_engine(evaluator:conditions.ConditionEvaluator) -> rules.RuleEngine:
    return rules.RuleEngine(evaluator)

@pytest.fixture
def event_generator() -> generator.EventGenerator:
    return generator.EventGenerator(seed=0)
