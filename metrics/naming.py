"""Naming conventions for rendering meter names and tag keys on the wire"""
import re
from typing import Callable, Dict
from enum import Enum


def _identity(name: str) -> str:
    return name


def _camel_case(name: str) -> str:
    """Only dots separate words; underscores and dashes are kept"""
    first, *rest = name.split(".")
    return first + "".join(part[0].upper() + part[1:] for part in rest if part)


def _snake_case(name: str) -> str:
    return re.sub(r"[.\-\s]+", "_", name)


def _dot(name: str) -> str:
    return re.sub(r"[_\-\s]+", ".", name)


class NamingConvention(Enum):
    """How meter names and tag keys are rendered.

    Tag values are never rewritten.
    """
    IDENTITY = "identity"
    CAMEL_CASE = "camelCase"
    SNAKE_CASE = "snake_case"
    DOT = "dot"

    def apply(self, name: str) -> str:
        """Render a meter name"""
        return _RENDERERS[self](name)

    def tag_key(self, key: str) -> str:
        return _RENDERERS[self](key)

    def tag_value(self, value: str) -> str:
        return value


_RENDERERS: Dict[NamingConvention, Callable[[str], str]] = {
    NamingConvention.IDENTITY: _identity,
    NamingConvention.CAMEL_CASE: _camel_case,
    NamingConvention.SNAKE_CASE: _snake_case,
    NamingConvention.DOT: _dot,
}
