"""
odata_expand.odata.serializer - Entity payloads
================================================

Turns loaded ORM entities into OData JSON payloads following the
``$select``/``$expand`` shape of the request.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from odata_expand.odata.metadata import EdmModel, EntityShape
from odata_expand.odata.options import ExpandItem


def _selected(shape: EntityShape, select: Optional[List[str]]):
    if not select or "*" in select:
        return list(shape.properties)
    # the key is always returned so entities stay addressable
    return [p for p in shape.properties if p.name in select or p is shape.key]


def serialize_entity(
    model: EdmModel,
    shape: EntityShape,
    entity: Any,
    *,
    select: Optional[List[str]] = None,
    expand: Sequence[ExpandItem] = (),
) -> Dict[str, Any]:
    """
    Serialize one entity.

    Parameters
    ----------
    model : EdmModel
        Model used to resolve navigation targets
    shape : EntityShape
        Entity type of ``entity``
    entity : object
        Loaded ORM instance; expanded relationships must already be loaded
    select : list of str, optional
        Structural properties to include
    expand : sequence of ExpandItem
        Navigations to inline

    Returns
    -------
    dict
        JSON-ready payload keyed by EDM property names
    """
    out: Dict[str, Any] = {
        p.name: getattr(entity, p.attr) for p in _selected(shape, select)
    }
    for item in expand:
        nav = shape.find_navigation(item.name)
        if nav is None:
            continue
        target = model.shape(nav.target)
        out[item.name] = [
            serialize_entity(model, target, child, select=item.select, expand=item.expand)
            for child in getattr(entity, nav.attr)
        ]
    return out


def serialize_collection(
    model: EdmModel,
    shape: EntityShape,
    entities: Sequence[Any],
    *,
    context_url: str,
    select: Optional[List[str]] = None,
    expand: Sequence[ExpandItem] = (),
    count: Optional[int] = None,
    next_link: Optional[str] = None,
) -> Dict[str, Any]:
    """Serialize a page of entities into an OData collection response."""
    payload: Dict[str, Any] = {"@odata.context": context_url}
    if count is not None:
        payload["@odata.count"] = count
    payload["value"] = [
        serialize_entity(model, shape, e, select=select, expand=expand)
        for e in entities
    ]
    if next_link:
        payload["@odata.nextLink"] = next_link
    return payload
