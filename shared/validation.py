"""
Declarative request validation.

A rule list is an ordered sequence of (field, predicate, message) triples.
Every rule is evaluated, so a single response reports all failing fields
in the order the rules were declared.
"""

from typing import Any, Callable, Iterable, NamedTuple, Optional, Type

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel

from .errors import ValidationError


Predicate = Callable[[Any, dict], bool]

# Primary keys are 32-bit signed Integer columns
MAX_ID = 2**31 - 1


class Rule(NamedTuple):
    field: str
    predicate: Predicate
    message: str


def required(value: Any, data: dict) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def is_email(value: Any, data: dict) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def min_length(n: int) -> Predicate:
    def predicate(value: Any, data: dict) -> bool:
        return isinstance(value, str) and len(value) >= n
    return predicate


def matches(other_field: str) -> Predicate:
    """Passes when the value is absent or equal to data[other_field]."""
    def predicate(value: Any, data: dict) -> bool:
        return value is None or value == data.get(other_field)
    return predicate


def check(data: dict, rules: Iterable[Rule]) -> None:
    errors = [
        {"field": rule.field, "message": rule.message}
        for rule in rules
        if not rule.predicate(data.get(rule.field), data)
    ]
    if errors:
        raise ValidationError(errors)


def validated(schema: Type[BaseModel], rules: Iterable[Rule]):
    """
    Build a FastAPI dependency that parses the request body into `schema`
    and runs `rules` against it before the handler body executes.
    """
    rules = list(rules)

    def dependency(payload: schema) -> BaseModel:  # type: ignore[valid-type]
        check(payload.model_dump(), rules)
        return payload

    return dependency


def parse_id(raw: str) -> Optional[int]:
    """Return raw as a primary key, or None if it is not a plain in-range integer."""
    if not raw.isdecimal():
        return None
    value = int(raw)
    return value if value <= MAX_ID else None
