""" Utility methods broadly applicable across the codebase. """

import dataclasses
from typing import Any, Hashable, Iterable, Mapping, Optional, Callable, TypeVar

T = TypeVar('T')

def fullname(o:Any) -> str:
    # from https://stackoverflow.com/a/2020083/553580
    # o.__module__ + "." + o.__class__.__qualname__ is an example in
    # this context of H.L. Mencken's "neat, plausible, and wrong."
    # Python makes no guarantees as to whether the __module__ special
    # attribute is defined, so we take a more circumspect approach.

    if isinstance(o, type):
        klass = o
    else:
        klass = o.__class__

    module = klass.__module__
    if module is None or module == str.__class__.__module__:
        return klass.__qualname__  # Avoid reporting __builtin__
    else:
        return module + '.' + klass.__qualname__

def get_nested(data:Any, path:str, default:Any=None) -> Any:
    """ Looks up a dotted path (e.g. "environment.season") in nested mappings.

    Returns default if any step along the path is missing or not a mapping.
    """
    current = data
    for key in path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return default
        current = current[key]
    return current

def unique(items:Iterable[T], key:Optional[Callable[[T], Hashable]]=None) -> list[T]:
    """ order preserving dedupe, first occurrence wins """
    seen:set[Hashable] = set()
    ret:list[T] = []
    for item in items:
        k = key(item) if key else item
        if k in seen:
            continue
        seen.add(k)
        ret.append(item)
    return ret

def is_number(x:Any) -> bool:
    # bools are ints in python, but not stat values
    return isinstance(x, (int, float)) and not isinstance(x, bool)

def as_list(x:Any) -> list[Any]:
    """ None => [], scalar => [scalar], sequence => list(sequence) """
    if x is None:
        return []
    if isinstance(x, (list, tuple)):
        return list(x)
    return [x]

@dataclasses.dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = dataclasses.field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid

    @staticmethod
    def from_errors(errors:list[str]) -> "ValidationResult":
        return ValidationResult(len(errors) == 0, errors)
