"""
odata_expand.client.metadata - $metadata parsing
=================================================

Reads the CSDL document of a service: entity sets, their structural
properties and navigation properties.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import xml.etree.ElementTree as ET

from odata_expand.client.session import ODataSession


@dataclass
class EntitySetInfo:
    """
    Information about an OData entity set.

    Attributes
    ----------
    name : str
        Entity set name (e.g., "Persons")
    entity_type : str
        Full entity type name including namespace
    properties : list of str
        Structural property names
    navigations : list of str
        Navigation property names
    open_type : bool
        Whether the entity type accepts dynamic properties
    """
    name: str
    entity_type: str
    properties: List[str]
    navigations: List[str] = field(default_factory=list)
    open_type: bool = False


def _strip_ns(tag: str) -> str:
    return tag.split("}", 1)[-1] if "}" in tag else tag


def parse_csdl(xml_text: str) -> Dict[str, EntitySetInfo]:
    """
    Parse a CSDL document into entity set descriptions.

    Parameters
    ----------
    xml_text : str
        ``$metadata`` document

    Returns
    -------
    dict
        Entity set name -> EntitySetInfo
    """
    root = ET.fromstring(xml_text)

    # EntityType -> (properties, navigations, open)
    types: Dict[str, Tuple[List[str], List[str], bool]] = {}
    for schema in root.iter():
        if _strip_ns(schema.tag) != "Schema":
            continue
        namespace = schema.attrib.get("Namespace", "")
        for node in schema:
            if _strip_ns(node.tag) != "EntityType":
                continue
            et_name = node.attrib.get("Name")
            if not et_name:
                continue
            props: List[str] = []
            navs: List[str] = []
            for c in node:
                tag = _strip_ns(c.tag)
                name = c.attrib.get("Name")
                if not name:
                    continue
                if tag == "Property":
                    props.append(name)
                elif tag == "NavigationProperty":
                    navs.append(name)
            is_open = node.attrib.get("OpenType", "false").lower() == "true"
            entry = (props, navs, is_open)
            types[et_name] = entry
            if namespace:
                types[f"{namespace}.{et_name}"] = entry

    entity_sets: Dict[str, EntitySetInfo] = {}
    for node in root.iter():
        if _strip_ns(node.tag) != "EntitySet":
            continue
        es_name = node.attrib.get("Name")
        et_full = node.attrib.get("EntityType")
        if not es_name or not et_full:
            continue
        props, navs, is_open = types.get(
            et_full, types.get(et_full.split(".")[-1], ([], [], False))
        )
        entity_sets[es_name] = EntitySetInfo(
            name=es_name,
            entity_type=et_full,
            properties=list(props),
            navigations=list(navs),
            open_type=is_open,
        )
    return entity_sets


class ODataMetadata:
    """
    Lazily loaded ``$metadata`` of a service.

    Parameters
    ----------
    sess : ODataSession
        Active OData session

    Examples
    --------
    >>> meta = ODataMetadata(sess)
    >>> meta.entity_sets()
    ['Persons']
    >>> meta.properties("Persons")
    ['Id', 'Name', 'Age']
    >>> meta.navigations("Persons")
    ['Attributes', 'Orders', 'Pets']
    """

    def __init__(self, sess: ODataSession) -> None:
        self.sess = sess
        self._entity_sets: Dict[str, EntitySetInfo] = {}

    def refresh(self) -> None:
        """Fetch and parse ``$metadata``; called on first access."""
        self._entity_sets = parse_csdl(self.sess.get_text("$metadata"))

    def _sets(self) -> Dict[str, EntitySetInfo]:
        if not self._entity_sets:
            self.refresh()
        return self._entity_sets

    def entity_sets(self) -> List[str]:
        return sorted(self._sets().keys())

    def properties(self, entity_set: str) -> List[str]:
        info = self._sets().get(entity_set)
        return list(info.properties) if info else []

    def navigations(self, entity_set: str) -> List[str]:
        info = self._sets().get(entity_set)
        return list(info.navigations) if info else []

    def validate_select(
        self,
        entity_set: str,
        fields: List[str]
    ) -> Tuple[List[str], List[str]]:
        """
        Validate fields against entity set metadata.

        Returns
        -------
        tuple of (list, list)
            (valid_fields, unknown_fields)
        """
        props = set(self.properties(entity_set))
        valid, unknown = [], []
        for f in fields:
            (valid if f in props else unknown).append(f)
        return valid, unknown

    def get_entity_set_info(self, entity_set: str) -> Optional[EntitySetInfo]:
        return self._sets().get(entity_set)
