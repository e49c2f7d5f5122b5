"""
odata_expand.persons.records - Open input records
==================================================

Wire representations accepted on write. Every record is an *open type*:
members that are not declared on the model are dynamic properties and are
stored as ``Attributes`` rows.

>>> rec = OpenPerson.model_validate({"Name": "Ada", "Age": 36, "Title": "Countess"})
>>> rec.dynamic_properties()
{'Title': 'Countess'}
>>> person = to_person(rec)
>>> [(a.key, a.value) for a in person.attributes]
[('Title', 'Countess')]
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from odata_expand.persons.entities import Attribute, Order, Person, Pet


class OpenRecord(BaseModel):
    """Base for open records: undeclared members are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[int] = Field(
        default=None,
        alias="Id",
        description="Assigned by the server; ignored on write",
    )
    attributes: Dict[str, Any] = Field(
        default_factory=dict,
        alias="Attributes",
        description="Explicit dynamic properties",
    )

    @model_validator(mode="after")
    def _no_duplicate_dynamic_keys(self) -> "OpenRecord":
        clash = set(self.attributes) & set(self._extras())
        if clash:
            raise ValueError(
                f"Dynamic properties given twice: {', '.join(sorted(clash))}"
            )
        return self

    def _extras(self) -> Dict[str, Any]:
        return {
            k: v for k, v in (self.model_extra or {}).items()
            if not k.startswith("@")
        }

    def dynamic_properties(self) -> Dict[str, Any]:
        """Explicit ``Attributes`` followed by undeclared members, in order."""
        merged = dict(self.attributes)
        merged.update(self._extras())
        return merged


class OpenOrder(OpenRecord):
    product: str = Field(alias="Product")
    quantity: int = Field(default=1, alias="Quantity", ge=0)


class OpenPet(OpenRecord):
    name: str = Field(alias="Name")
    species: Optional[str] = Field(default=None, alias="Species")


class OpenPerson(OpenRecord):
    """
    Open input record for a person.

    Examples
    --------
    >>> OpenPerson.model_validate({
    ...     "Name": "Ada",
    ...     "Age": 36,
    ...     "Attributes": {"Nickname": "Enchantress"},
    ...     "Orders": [{"Product": "Engine", "Quantity": 1}],
    ...     "Pets": [{"Name": "Rex", "Species": "Dog", "Colour": "Brown"}],
    ... })
    """
    name: str = Field(alias="Name", min_length=1, max_length=200)
    age: Optional[int] = Field(default=None, alias="Age", ge=0)
    orders: List[OpenOrder] = Field(default_factory=list, alias="Orders")
    pets: List[OpenPet] = Field(default_factory=list, alias="Pets")


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

def _to_attributes(values: Dict[str, Any]) -> List[Attribute]:
    return [Attribute(key=k, value=v) for k, v in values.items()]


def _from_attributes(rows: Iterable[Attribute]) -> Dict[str, Any]:
    return {row.key: row.value for row in rows}


def to_order(record: OpenOrder) -> Order:
    return Order(
        product=record.product,
        quantity=record.quantity,
        attributes=_to_attributes(record.dynamic_properties()),
    )


def to_pet(record: OpenPet) -> Pet:
    return Pet(
        name=record.name,
        species=record.species,
        attributes=_to_attributes(record.dynamic_properties()),
    )


def to_person(record: OpenPerson) -> Person:
    """
    Map an open record to a new, unsaved :class:`Person`.

    The record's ``Id`` is ignored; identity is assigned on commit.
    """
    return Person(
        name=record.name,
        age=record.age,
        attributes=_to_attributes(record.dynamic_properties()),
        orders=[to_order(o) for o in record.orders],
        pets=[to_pet(p) for p in record.pets],
    )


def from_person(person: Person) -> OpenPerson:
    """
    Map a loaded :class:`Person` back to its open record.

    Dynamic properties come back under ``Attributes``.
    """
    return OpenPerson(
        id=person.id,
        name=person.name,
        age=person.age,
        attributes=_from_attributes(person.attributes),
        orders=[
            OpenOrder(
                id=o.id,
                product=o.product,
                quantity=o.quantity,
                attributes=_from_attributes(o.attributes),
            )
            for o in person.orders
        ],
        pets=[
            OpenPet(
                id=p.id,
                name=p.name,
                species=p.species,
                attributes=_from_attributes(p.attributes),
            )
            for p in person.pets
        ],
    )
