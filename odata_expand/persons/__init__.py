"""
odata_expand.persons - The Persons entity set
==============================================

- Person, Order, Pet, Attribute: persisted entities
- OpenPerson: open input record, mapped with to_person / from_person
- PersonContext: query and commit access over an AsyncSession

"""

from odata_expand.persons.entities import PERSONS, Attribute, Order, Person, Pet, build_model
from odata_expand.persons.records import OpenOrder, OpenPerson, OpenPet, from_person, to_person
from odata_expand.persons.context import PersonContext, QueryPage

__all__ = [
    "PERSONS",
    "Attribute",
    "Order",
    "Person",
    "Pet",
    "build_model",
    "OpenOrder",
    "OpenPerson",
    "OpenPet",
    "from_person",
    "to_person",
    "PersonContext",
    "QueryPage",
]
