"""
Population of references: replace stored ids with the documents they name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Sequence, Tuple, Type

from ..core.references import RelatedField, RelationshipError, relation_registry

if TYPE_CHECKING:
    from ..core.document import Document
    from ..persistence.session import Session


@dataclass(frozen=True)
class PopulateSpec:
    """
    One reference path to populate, with optional nested paths on the targets.
    """

    path: str
    model: Type["Document"] | str | None = None
    populate: Tuple["PopulateSpec", ...] = field(default_factory=tuple)


PopulateInput = Any


def parse_populate(spec: PopulateInput) -> List[PopulateSpec]:
    """
    Normalise the accepted population shapes into a list of specs.

    ``"blog_posts__comments__user"`` (or the dotted form) nests each segment
    under the previous one; mappings accept ``path``, ``model`` and ``populate``.
    """
    if spec is None:
        return []
    if isinstance(spec, PopulateSpec):
        return [spec]
    if isinstance(spec, str):
        segments = [part for part in spec.replace("__", ".").split(".") if part]
        if not segments:
            raise ValueError("Populate path must not be empty")
        node = PopulateSpec(segments[-1])
        for segment in reversed(segments[:-1]):
            node = PopulateSpec(segment, populate=(node,))
        return [node]
    if isinstance(spec, Mapping):
        if "path" not in spec:
            raise ValueError("Populate mapping requires a 'path' key")
        nested = tuple(parse_populate(spec.get("populate")))
        parsed = parse_populate(spec["path"])
        head = parsed[0]
        if head.populate:
            raise ValueError("Populate mapping 'path' must name a single field")
        return [PopulateSpec(head.path, model=spec.get("model"), populate=nested)]
    if isinstance(spec, Iterable):
        specs: List[PopulateSpec] = []
        for item in spec:
            specs.extend(parse_populate(item))
        return specs
    raise TypeError(f"Unsupported populate specification {spec!r}")


async def populate(
    session: "Session", documents: Sequence["Document"], specs: Iterable[PopulateSpec]
) -> None:
    """
    Populate ``specs`` on ``documents`` in place.

    Each level is loaded with a single ``$in`` query per path; ids whose
    target no longer exists become ``None``.
    """
    documents = [doc for doc in documents if doc is not None]
    if not documents:
        return
    for spec in specs:
        await _populate_path(session, documents, spec)


async def _populate_path(
    session: "Session", documents: List["Document"], spec: PopulateSpec
) -> None:
    model = type(documents[0])
    try:
        field_obj = model._meta.get_field(spec.path)
    except KeyError as exc:
        raise RelationshipError(
            f"Cannot populate '{spec.path}' on '{model.__name__}': no such field"
        ) from exc
    if not isinstance(field_obj, RelatedField):
        raise RelationshipError(
            f"Cannot populate '{spec.path}' on '{model.__name__}': not a reference field"
        )
    target = _target_model(field_obj, spec)

    ids: List[Any] = []
    for doc in documents:
        for value in _values(field_obj, doc):
            ref_id = field_obj.id_of(value)
            if ref_id is not None:
                ids.append(ref_id)
    unique_ids = list(dict.fromkeys(ids))

    loaded: Dict[Any, "Document"] = {}
    if unique_ids:
        related = await session.query(target).find({"_id": {"$in": unique_ids}})
        loaded = {item.pk: item for item in related}
        if spec.populate and related:
            await populate(session, related, spec.populate)

    name = field_obj.require_name()
    for doc in documents:
        if field_obj.many:
            doc._field_values[name] = [
                loaded.get(field_obj.id_of(value)) for value in _values(field_obj, doc)
            ]
        else:
            value = doc._field_values.get(name)
            doc._field_values[name] = loaded.get(field_obj.id_of(value)) if value is not None else None


def _values(field_obj: RelatedField, doc: "Document") -> List[Any]:
    value = doc._field_values.get(field_obj.require_name())
    if value is None:
        return []
    if field_obj.many:
        return list(value)
    return [value]


def _target_model(field_obj: RelatedField, spec: PopulateSpec) -> Type["Document"]:
    if spec.model is None:
        return field_obj.require_remote_model()
    target = relation_registry.get_model(spec.model)
    if target is None:
        raise RelationshipError(f"Unknown populate model '{spec.model}'")
    return target
