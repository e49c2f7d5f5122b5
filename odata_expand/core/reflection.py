"""
odata_expand.core.reflection - Non-public member access
========================================================

Read and write private fields and properties by name.

Fields are instance attributes (``__dict__`` entries or ``__slots__``);
properties are ``property`` descriptors on the class hierarchy. Names that
start with a double underscore are looked up in their mangled form for
every class in the MRO, so ``"__secret"`` finds ``_Base__secret`` even when
called on a subclass instance.
"""

from __future__ import annotations

import types
from typing import Any, Iterator, Optional, Tuple


class MemberNotFoundError(AttributeError):
    """Raised when no field or property with the given name exists."""

    def __init__(self, kind: str, name: str, owner: type) -> None:
        super().__init__(
            f"{kind} {name} was not found in type "
            f"{owner.__module__}.{owner.__qualname__}"
        )
        self.kind = kind
        self.name = name
        self.owner = owner


def _require_instance(obj: Any) -> None:
    if obj is None:
        raise ValueError("obj must not be None")


def _candidate_names(cls: type, name: str) -> Iterator[str]:
    yield name
    if name.startswith("__") and not name.endswith("__"):
        yield f"_{cls.__name__.lstrip('_')}{name}"


def _find_field(obj: Any, name: str) -> Optional[Tuple[str, Any]]:
    """Return ``(attribute_name, slot_descriptor_or_None)`` for a field."""
    instance_dict = getattr(obj, "__dict__", {})
    for cls in type(obj).__mro__:
        for candidate in _candidate_names(cls, name):
            if candidate in instance_dict:
                return candidate, None
            slot = cls.__dict__.get(candidate)
            # slots surface as member descriptors on the declaring class
            if isinstance(slot, types.MemberDescriptorType):
                return candidate, slot
    return None


def _find_property(obj: Any, name: str) -> Optional[property]:
    for cls in type(obj).__mro__:
        for candidate in _candidate_names(cls, name):
            attr = cls.__dict__.get(candidate)
            if isinstance(attr, property):
                return attr
    return None


def get_private_property_value(obj: Any, prop_name: str) -> Any:
    """
    Return the value of a (possibly private) property.

    Raises
    ------
    ValueError
        If ``obj`` is None
    MemberNotFoundError
        If no property named ``prop_name`` exists on the type
    """
    _require_instance(obj)
    prop = _find_property(obj, prop_name)
    if prop is None or prop.fget is None:
        raise MemberNotFoundError("Property", prop_name, type(obj))
    return prop.fget(obj)


def set_private_property_value(obj: Any, prop_name: str, value: Any) -> None:
    """
    Set a (possibly private) property through its setter.

    Raises
    ------
    ValueError
        If ``obj`` is None
    MemberNotFoundError
        If no property named ``prop_name`` exists on the type
    AttributeError
        If the property has no setter
    """
    _require_instance(obj)
    prop = _find_property(obj, prop_name)
    if prop is None:
        raise MemberNotFoundError("Property", prop_name, type(obj))
    if prop.fset is None:
        raise AttributeError(f"Property {prop_name} of {type(obj).__qualname__} is read-only")
    prop.fset(obj, value)


def get_private_field_value(obj: Any, field_name: str) -> Any:
    """
    Return the value of a (possibly private) field, searching base classes.

    Raises
    ------
    ValueError
        If ``obj`` is None
    MemberNotFoundError
        If no field named ``field_name`` exists anywhere in the hierarchy
    """
    _require_instance(obj)
    found = _find_field(obj, field_name)
    if found is None:
        raise MemberNotFoundError("Field", field_name, type(obj))
    attr_name, slot = found
    if slot is not None:
        try:
            return slot.__get__(obj, type(obj))
        except AttributeError:
            raise MemberNotFoundError("Field", field_name, type(obj)) from None
    return obj.__dict__[attr_name]


def set_private_field_value(obj: Any, field_name: str, value: Any) -> None:
    """
    Set a (possibly private) field, searching base classes.

    Only existing fields are written; a missing field is an error rather
    than a new attribute.

    Raises
    ------
    ValueError
        If ``obj`` is None
    MemberNotFoundError
        If no field named ``field_name`` exists anywhere in the hierarchy
    """
    _require_instance(obj)
    found = _find_field(obj, field_name)
    if found is None:
        raise MemberNotFoundError("Field", field_name, type(obj))
    attr_name, slot = found
    if slot is not None:
        slot.__set__(obj, value)
    else:
        obj.__dict__[attr_name] = value
