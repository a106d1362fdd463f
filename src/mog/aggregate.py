"""
Pipeline - incremental builder for aggregation pipelines.

Stages are single-key documents appended in call order. Projection and
sort stages reuse the query builder's helpers, so ``keep``, ``omit`` and
``sort`` behave the same in a pipeline as on a find.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from bson import json_util

from .query import keep_fields, omit_fields, sort_order
from .types import Filter, Stage

logger = logging.getLogger(__name__)

__all__ = ["Pipeline"]


class Pipeline:
    """
    Ordered list of aggregation stages.

    Every method appends one or more stages and returns the pipeline, so
    calls can be chained. Running a pipeline does not clear it.

    Example:
        pipeline = (
            Pipeline()
            .lookup_by_id("location", "location_id")
            .keep("address", "location")
        )
        docs = list(collection.aggregate(pipeline.stages))
    """

    __slots__ = ("_stages",)

    def __init__(self) -> None:
        self._stages: list[Stage] = []

    @property
    def stages(self) -> list[Stage]:
        """The stage documents, in order."""
        return list(self._stages)

    def stage(self, operator: str, params: Any) -> Pipeline:
        """
        Append a generic stage.

        Args:
            operator: Stage operator name, with or without the leading "$".
            params: Operator parameters.
        """
        name = operator if operator.startswith("$") else f"${operator}"
        self._stages.append({name: params})
        return self

    def match(self, criteria: Filter) -> Pipeline:
        return self.stage("match", criteria)

    def keep(self, *fields: str) -> Pipeline:
        """Append a $project stage keeping only ``fields``; no fields adds nothing."""
        return self._stage_if("project", keep_fields(*fields))

    def omit(self, *fields: str) -> Pipeline:
        """Append a $project stage dropping ``fields``; no fields adds nothing."""
        return self._stage_if("project", omit_fields(*fields))

    def sort(self, *tokens: str) -> Pipeline:
        """Append a $sort stage; "-field" sorts descending. No tokens adds nothing."""
        return self._stage_if("sort", dict(sort_order(tokens)))

    def _stage_if(self, operator: str, params: Any) -> Pipeline:
        # empty $project and $sort documents are never appended
        return self.stage(operator, params) if params else self

    def lookup_by_id(
        self,
        from_collection: str,
        local_field: str,
        as_name: str | None = None,
        keep_unmatched: bool = False,
    ) -> Pipeline:
        """
        Join one foreign document per input document by its _id.

        Appends a $lookup matching ``local_field`` against the foreign
        collection's ``_id`` followed by an $unwind of the result, so the
        joined document is embedded as a single value under ``as_name``.

        This is an inner join: an input document whose ``local_field``
        matches no foreign _id is dropped from the output. Pass
        ``keep_unmatched=True`` to keep such documents with no embedded
        value instead. More than one match yields one output document per
        match.

        Args:
            from_collection: Foreign collection name.
            local_field: Field holding the foreign _id.
            as_name: Output field name, defaults to ``from_collection``.
            keep_unmatched: Keep input documents that have no match.
        """
        as_name = as_name or from_collection
        self.stage(
            "lookup",
            {
                "from": from_collection,
                "localField": local_field,
                "foreignField": "_id",
                "as": as_name,
            },
        )
        if keep_unmatched:
            return self.stage(
                "unwind", {"path": f"${as_name}", "preserveNullAndEmptyArrays": True}
            )
        return self.stage("unwind", f"${as_name}")

    def totals(self, group_by: str, *sum_fields: str) -> Pipeline:
        """
        Append a $group stage computing a count and per-field sums.

        The output documents have ``_id`` set to the group value,
        ``count``, and ``tot_<field>`` for each field in ``sum_fields``.

        Args:
            group_by: Field to group on.
            *sum_fields: Numeric fields to total.
        """
        group: dict[str, Any] = {"_id": f"${group_by}", "count": {"$sum": 1}}
        for field in sum_fields:
            group[f"tot_{field}"] = {"$sum": f"${field}"}
        return self.stage("group", group)

    def show(self) -> str:
        """Render the pipeline as indented extended JSON."""
        text = json_util.dumps(self._stages, indent=2)
        logger.debug("pipeline:\n%s", text)
        return text

    def __len__(self) -> int:
        return len(self._stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(list(self._stages))

    def __repr__(self) -> str:
        return f"Pipeline({len(self._stages)} stages)"
