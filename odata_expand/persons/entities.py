"""
odata_expand.persons.entities - Persisted entities
===================================================

SQLAlchemy models for persons and their related orders and pets, each
carrying an open-ended ``Attributes`` collection of key/value rows, plus
the EDM model that exposes them.
"""

from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from odata_expand.core.database import Base
from odata_expand.odata.metadata import (
    EdmModel,
    EntityShape,
    NavigationProperty,
    StructuralProperty,
)


class Attribute(Base):
    """
    One dynamically-typed extension value.

    Exactly one owner column is set, depending on which entity the
    attribute belongs to.
    """
    __tablename__ = "attributes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[str] = mapped_column(String(200))
    value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    person_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("persons.id", ondelete="CASCADE"), nullable=True, index=True
    )
    order_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=True, index=True
    )
    pet_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("pets.id", ondelete="CASCADE"), nullable=True, index=True
    )

    def __repr__(self) -> str:
        return f"Attribute(id={self.id!r}, key={self.key!r}, value={self.value!r})"


class Person(Base):
    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    attributes: Mapped[List[Attribute]] = relationship(
        foreign_keys=[Attribute.person_id],
        cascade="all, delete-orphan",
        order_by=Attribute.id,
    )
    orders: Mapped[List["Order"]] = relationship(
        back_populates="person",
        cascade="all, delete-orphan",
        order_by="Order.id",
    )
    pets: Mapped[List["Pet"]] = relationship(
        back_populates="person",
        cascade="all, delete-orphan",
        order_by="Pet.id",
    )

    def __repr__(self) -> str:
        return f"Person(id={self.id!r}, name={self.name!r})"


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    person_id: Mapped[int] = mapped_column(
        ForeignKey("persons.id", ondelete="CASCADE"), index=True
    )

    person: Mapped[Person] = relationship(back_populates="orders")
    attributes: Mapped[List[Attribute]] = relationship(
        foreign_keys=[Attribute.order_id],
        cascade="all, delete-orphan",
        order_by=Attribute.id,
    )


class Pet(Base):
    __tablename__ = "pets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    species: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    person_id: Mapped[int] = mapped_column(
        ForeignKey("persons.id", ondelete="CASCADE"), index=True
    )

    person: Mapped[Person] = relationship(back_populates="pets")
    attributes: Mapped[List[Attribute]] = relationship(
        foreign_keys=[Attribute.pet_id],
        cascade="all, delete-orphan",
        order_by=Attribute.id,
    )


# ---------------------------------------------------------------------------
# EDM model
# ---------------------------------------------------------------------------

NAMESPACE = "OdataExpandOpenType"
PERSONS = "Persons"

_ATTRIBUTES = NavigationProperty("Attributes", "attributes", "Attribute")

ATTRIBUTE_SHAPE = EntityShape(
    "Attribute",
    Attribute,
    properties=[
        StructuralProperty("Id", "id", "Edm.Int32", nullable=False),
        StructuralProperty("Key", "key", "Edm.String", nullable=False),
        StructuralProperty("Value", "value", "Edm.Untyped"),
    ],
)

ORDER_SHAPE = EntityShape(
    "Order",
    Order,
    properties=[
        StructuralProperty("Id", "id", "Edm.Int32", nullable=False),
        StructuralProperty("Product", "product", "Edm.String", nullable=False),
        StructuralProperty("Quantity", "quantity", "Edm.Int32", nullable=False),
    ],
    navigations=[_ATTRIBUTES],
    open_type=True,
)

PET_SHAPE = EntityShape(
    "Pet",
    Pet,
    properties=[
        StructuralProperty("Id", "id", "Edm.Int32", nullable=False),
        StructuralProperty("Name", "name", "Edm.String", nullable=False),
        StructuralProperty("Species", "species", "Edm.String"),
    ],
    navigations=[_ATTRIBUTES],
    open_type=True,
)

PERSON_SHAPE = EntityShape(
    "Person",
    Person,
    properties=[
        StructuralProperty("Id", "id", "Edm.Int32", nullable=False),
        StructuralProperty("Name", "name", "Edm.String", nullable=False),
        StructuralProperty("Age", "age", "Edm.Int32"),
    ],
    navigations=[
        _ATTRIBUTES,
        NavigationProperty("Orders", "orders", "Order"),
        NavigationProperty("Pets", "pets", "Pet"),
    ],
    open_type=True,
)


def build_model() -> EdmModel:
    """Return the EDM model exposed by the Persons service."""
    model = EdmModel(NAMESPACE)
    for shape in (PERSON_SHAPE, ORDER_SHAPE, PET_SHAPE, ATTRIBUTE_SHAPE):
        model.add_type(shape)
    model.add_entity_set(PERSONS, "Person")
    return model
