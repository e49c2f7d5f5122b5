"""
odata_expand.odata.metadata - Entity data model description
============================================================

Describes the exposed entity types (structural and navigation properties)
and renders the ``$metadata`` CSDL document and the service document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import xml.etree.ElementTree as ET

EDMX_NS = "http://docs.oasis-open.org/odata/ns/edmx"
EDM_NS = "http://docs.oasis-open.org/odata/ns/edm"


@dataclass(frozen=True)
class StructuralProperty:
    """
    A scalar property of an entity type.

    Attributes
    ----------
    name : str
        EDM property name, e.g. "Name"
    attr : str
        Mapped ORM attribute, e.g. "name"
    edm_type : str
        EDM primitive type, e.g. "Edm.String"
    nullable : bool
        Whether the property may be null
    """
    name: str
    attr: str
    edm_type: str = "Edm.String"
    nullable: bool = True


@dataclass(frozen=True)
class NavigationProperty:
    """A collection-valued navigation from one entity type to another."""
    name: str
    attr: str
    target: str


@dataclass
class EntityShape:
    """
    Mapping between an EDM entity type and its ORM class.

    Parameters
    ----------
    name : str
        Entity type name, e.g. "Person"
    model : type
        SQLAlchemy mapped class
    properties : list of StructuralProperty
        Structural properties; the first one is the key
    navigations : list of NavigationProperty
        Navigation properties
    open_type : bool
        Whether the type accepts dynamic properties
    """
    name: str
    model: type
    properties: List[StructuralProperty]
    navigations: List[NavigationProperty] = field(default_factory=list)
    open_type: bool = False

    @property
    def key(self) -> StructuralProperty:
        return self.properties[0]

    def find_property(self, name: str) -> Optional[StructuralProperty]:
        for p in self.properties:
            if p.name == name:
                return p
        return None

    def find_navigation(self, name: str) -> Optional[NavigationProperty]:
        for n in self.navigations:
            if n.name == name:
                return n
        return None

    def property_names(self) -> List[str]:
        return [p.name for p in self.properties]

    def navigation_names(self) -> List[str]:
        return [n.name for n in self.navigations]


class EdmModel:
    """
    The set of entity types and entity sets a service exposes.

    Examples
    --------
    >>> model = EdmModel("OdataExpandOpenType")
    >>> model.add_type(person_shape)
    >>> model.add_entity_set("Persons", "Person")
    >>> model.shape_for_set("Persons").name
    'Person'
    """

    def __init__(self, namespace: str, container: str = "Container") -> None:
        self.namespace = namespace
        self.container = container
        self.types: Dict[str, EntityShape] = {}
        self.entity_sets: Dict[str, str] = {}

    def add_type(self, shape: EntityShape) -> EntityShape:
        self.types[shape.name] = shape
        return shape

    def add_entity_set(self, name: str, type_name: str) -> None:
        if type_name not in self.types:
            raise KeyError(f"Unknown entity type {type_name}")
        self.entity_sets[name] = type_name

    def shape(self, type_name: str) -> EntityShape:
        return self.types[type_name]

    def shape_for_set(self, entity_set: str) -> EntityShape:
        return self.types[self.entity_sets[entity_set]]

    def qualified(self, type_name: str) -> str:
        return f"{self.namespace}.{type_name}"

    # ---------------- documents ----------------

    def service_document(self, context_url: str) -> Dict[str, Any]:
        """Return the JSON service document listing the entity sets."""
        return {
            "@odata.context": context_url,
            "value": [
                {"name": name, "kind": "EntitySet", "url": name}
                for name in sorted(self.entity_sets)
            ],
        }

    def to_csdl(self) -> str:
        """
        Render the model as an OData v4 CSDL XML document.

        Returns
        -------
        str
            ``$metadata`` document text
        """
        ET.register_namespace("edmx", EDMX_NS)
        root = ET.Element(f"{{{EDMX_NS}}}Edmx", {"Version": "4.0"})
        services = ET.SubElement(root, f"{{{EDMX_NS}}}DataServices")
        schema = ET.SubElement(services, "Schema", {
            "xmlns": EDM_NS,
            "Namespace": self.namespace,
        })

        for shape in self.types.values():
            attrs = {"Name": shape.name}
            if shape.open_type:
                attrs["OpenType"] = "true"
            et = ET.SubElement(schema, "EntityType", attrs)
            key = ET.SubElement(et, "Key")
            ET.SubElement(key, "PropertyRef", {"Name": shape.key.name})
            for prop in shape.properties:
                ET.SubElement(et, "Property", {
                    "Name": prop.name,
                    "Type": prop.edm_type,
                    "Nullable": "true" if prop.nullable else "false",
                })
            for nav in shape.navigations:
                ET.SubElement(et, "NavigationProperty", {
                    "Name": nav.name,
                    "Type": f"Collection({self.qualified(nav.target)})",
                    "ContainsTarget": "true",
                })

        container = ET.SubElement(schema, "EntityContainer", {"Name": self.container})
        for name, type_name in self.entity_sets.items():
            ET.SubElement(container, "EntitySet", {
                "Name": name,
                "EntityType": self.qualified(type_name),
            })

        body = ET.tostring(root, encoding="unicode")
        return '<?xml version="1.0" encoding="utf-8"?>\n' + body
