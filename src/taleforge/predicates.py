""" A boolean logic predicate library """

import abc
from typing import TypeVar, Generic, Sequence

T = TypeVar('T')

class Criteria(Generic[T], abc.ABC):
    @abc.abstractmethod
    def evaluate(self, universe:T) -> bool: ...

class Literal(Criteria[T]):
    def __init__(self, value:bool) -> None:
        self.value = value
    def evaluate(self, universe:T) -> bool:
        return self.value

class Negation(Criteria[T]):
    def __init__(self, inner:Criteria[T]) -> None:
        self.inner = inner

    def evaluate(self, universe:T) -> bool:
        return not self.inner.evaluate(universe)

class Disjunction(Criteria[T]):
    """ true if any inner criteria is true, false if there are none """
    def __init__(self, inner:Sequence[Criteria[T]]) -> None:
        self.inner = list(inner)

    def evaluate(self, universe:T) -> bool:
        return any(c.evaluate(universe) for c in self.inner)

class Conjunction(Criteria[T]):
    """ true if all inner criteria are true, vacuously true if there are none """
    def __init__(self, inner:Sequence[Criteria[T]]) -> None:
        self.inner = list(inner)

    def evaluate(self, universe:T) -> bool:
        return all(c.evaluate(universe) for c in self.inner)
