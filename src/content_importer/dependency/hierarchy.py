"""Hierarchy resolution - parent-before-child ordering of pending objects.

Overview:
--------
Rows may name their parent by legacy id (bulkUploadLegacyParentId) instead of
by an existing repository item. Such a parent may be another row of the same
batch, so rows must be created in an order where every in-batch parent comes
before its children.

Algorithm:
---------
1. Partition: objects with a legacy id or legacy parent id form the legacy
   graph; all others are the flat set.
2. Index legacy ids. The first object claiming an id owns it; later claimants
   fail with DUPLICATE_LEGACY_ID.
3. Add a hard edge owner -> child for every legacy parent id owned in the
   batch. Ids of rows rejected before ordering are blocked: their children
   and all descendants fail with ANCESTOR_EXCLUDED. Parent ids nobody owns
   are external: the child is a root for this run and keeps its own parent
   placement.
4. Stable Kahn sort over the hard edges. Among ready nodes the lowest input
   index goes first, so unrelated rows keep their file order.
5. Nodes the sort cannot reach lie on a cycle or below one. Each node has at
   most one hard parent, so walking parent links from any leftover node ends
   in its cycle. Cycle members fail with CYCLE (the message shows the path),
   the rest with ANCESTOR_EXCLUDED.
6. Legacy picker references between surviving nodes become soft edges, so a
   referenced item is created first where possible. A soft edge that would
   close a cycle is skipped with a warning; it never fails a node.
7. Output: the legacy graph in sorted order, then the flat set in input order.

Example:
-------
Input: [2 <- 1, 1, 3 <- 1]  (child <- parent)
Order: 1, 2, 3
"""

import heapq
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from ..config import PipelineConfig
from ..models.records import PendingImportObject
from ..models.results import HierarchyFailure, HierarchyFailureReason, HierarchyResult

logger = structlog.get_logger(__name__)


@dataclass
class HierarchyNode:
    """
    One legacy-graph object.

    Attributes:
        index: Position of the object in the input
        item: The pending object
        dependencies: Indexes of nodes that must be created first
        dependents: Indexes of nodes waiting on this one
        parent: Index of the in-batch legacy parent (hard edge), if any
    """

    index: int
    item: PendingImportObject
    dependencies: set[int] = field(default_factory=set)
    dependents: set[int] = field(default_factory=set)
    parent: int | None = None

    @property
    def label(self) -> str:
        return self.item.legacy_id or self.item.name


class HierarchyResolver:
    """
    Order pending objects so that parents are created before children.

    Args:
        config: Pipeline configuration (reference ordering, id case sensitivity)
    """

    def __init__(self, config: PipelineConfig | None = None) -> None:
        self.config = config or PipelineConfig()

    def key(self, legacy_id: str) -> str:
        """Normalize a legacy id for comparison."""
        normalized = legacy_id.strip()
        return normalized if self.config.legacy_ids_case_sensitive else normalized.casefold()

    def resolve(
        self, objects: list[PendingImportObject], blocked_ids: Iterable[str] = ()
    ) -> HierarchyResult:
        """
        Compute the creation order.

        Args:
            objects: Importable objects in input order
            blocked_ids: Legacy ids of batch rows that will not be created

        Returns:
            HierarchyResult with the ordered objects, the excluded ones and the
            external legacy parent ids
        """
        result = HierarchyResult(case_sensitive=self.config.legacy_ids_case_sensitive)
        blocked = {self.key(legacy_id) for legacy_id in blocked_ids if legacy_id}

        legacy: list[tuple[int, PendingImportObject]] = []
        flat: list[PendingImportObject] = []
        for index, obj in enumerate(objects):
            if obj.legacy_id or obj.legacy_parent_id:
                legacy.append((index, obj))
            else:
                flat.append(obj)

        nodes, owners = self._index_nodes(legacy, result)
        blocked_children = self._add_parent_edges(nodes, owners, blocked, result)
        self._exclude_blocked(nodes, blocked_children, result)

        survivors = self._sort(nodes)
        self._classify_unsorted(nodes, survivors, result)

        surviving = {index: nodes[index] for index in survivors}
        if self.config.order_by_references:
            self._add_reference_edges(surviving, owners)
            survivors = self._sort(surviving)

        result.ordered = [nodes[index].item for index in survivors] + flat

        logger.info(
            "Hierarchy resolved",
            legacy_nodes=len(legacy),
            flat=len(flat),
            ordered=len(result.ordered),
            excluded=len(result.failures),
            external_parents=len(result.external_parent_ids),
        )
        return result

    def _index_nodes(
        self, legacy: list[tuple[int, PendingImportObject]], result: HierarchyResult
    ) -> tuple[dict[int, HierarchyNode], dict[str, int]]:
        nodes: dict[int, HierarchyNode] = {}
        owners: dict[str, int] = {}

        for index, obj in legacy:
            if obj.legacy_id:
                key = self.key(obj.legacy_id)
                if key in owners:
                    first = nodes[owners[key]]
                    result.failures.append(
                        HierarchyFailure(
                            item=obj,
                            reason=HierarchyFailureReason.DUPLICATE_LEGACY_ID,
                            message=(
                                f"Legacy id '{obj.legacy_id}' is already used by "
                                f"'{first.item.name}'"
                            ),
                        )
                    )
                    logger.warning(
                        "Duplicate legacy id", legacy_id=obj.legacy_id, name=obj.name
                    )
                    continue
                owners[key] = index
            nodes[index] = HierarchyNode(index=index, item=obj)

        return nodes, owners

    def _add_parent_edges(
        self,
        nodes: dict[int, HierarchyNode],
        owners: dict[str, int],
        blocked: set[str],
        result: HierarchyResult,
    ) -> dict[int, str]:
        """Link children to in-batch parents; return children of blocked ids."""
        blocked_children: dict[int, str] = {}
        for node in nodes.values():
            parent_id = node.item.legacy_parent_id
            if not parent_id:
                continue

            parent_key = self.key(parent_id)
            parent_index = owners.get(parent_key)
            if parent_index is None and parent_key in blocked:
                blocked_children[node.index] = parent_id
                continue
            if parent_index is None:
                result.external_parent_ids.add(parent_key)
                logger.debug(
                    "External legacy parent", item=node.label, legacy_parent_id=parent_id
                )
                continue

            node.parent = parent_index
            node.dependencies.add(parent_index)
            nodes[parent_index].dependents.add(node.index)

        return blocked_children

    def _exclude_blocked(
        self,
        nodes: dict[int, HierarchyNode],
        blocked_children: dict[int, str],
        result: HierarchyResult,
    ) -> None:
        """Drop children of blocked ids and everything below them from `nodes`."""
        if not blocked_children:
            return

        excluded: dict[int, str] = {}
        for index, parent_id in blocked_children.items():
            excluded[index] = parent_id
            stack = list(nodes[index].dependents)
            while stack:
                current = stack.pop()
                if current in excluded:
                    continue
                excluded[current] = parent_id
                stack.extend(nodes[current].dependents)

        for index in sorted(excluded):
            node = nodes.pop(index)
            result.failures.append(
                HierarchyFailure(
                    item=node.item,
                    reason=HierarchyFailureReason.ANCESTOR_EXCLUDED,
                    message=f"Ancestor '{excluded[index]}' cannot be created",
                )
            )

        logger.warning(
            "Objects below rejected rows excluded",
            blocked_parents=len(set(blocked_children.values())),
            excluded=len(excluded),
        )

    def _sort(self, nodes: dict[int, HierarchyNode]) -> list[int]:
        """
        Stable Kahn sort; returns the indexes it could order.

        Ready nodes come out lowest input index first.
        """
        in_degree = {index: len(node.dependencies) for index, node in nodes.items()}
        ready = [index for index, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)

        ordered: list[int] = []
        while ready:
            index = heapq.heappop(ready)
            ordered.append(index)
            for dependent in nodes[index].dependents:
                if dependent not in in_degree:
                    continue
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, dependent)

        return ordered

    def _classify_unsorted(
        self, nodes: dict[int, HierarchyNode], sorted_indexes: list[int], result: HierarchyResult
    ) -> None:
        remaining = set(nodes) - set(sorted_indexes)
        if not remaining:
            return

        cycle_paths: dict[int, str] = {}
        for start in sorted(remaining):
            if start in cycle_paths:
                continue
            cycle = self._find_cycle(nodes, start)
            if cycle:
                path = " → ".join(nodes[i].label for i in cycle + [cycle[0]])
                for member in cycle:
                    cycle_paths.setdefault(member, path)

        for index in sorted(remaining):
            node = nodes[index]
            if index in cycle_paths:
                result.failures.append(
                    HierarchyFailure(
                        item=node.item,
                        reason=HierarchyFailureReason.CYCLE,
                        message=f"Circular parent reference: {cycle_paths[index]}",
                    )
                )
                continue

            ancestor = self._excluded_ancestor(nodes, index, cycle_paths)
            result.failures.append(
                HierarchyFailure(
                    item=node.item,
                    reason=HierarchyFailureReason.ANCESTOR_EXCLUDED,
                    message=f"Ancestor '{ancestor}' cannot be created",
                )
            )

        logger.warning(
            "Objects excluded from hierarchy",
            cycle_members=len(cycle_paths),
            downstream=len(remaining) - len(cycle_paths),
        )

    def _find_cycle(self, nodes: dict[int, HierarchyNode], start: int) -> list[int]:
        """Walk parent links from `start`; return the cycle it ends in, parent-first."""
        seen: dict[int, int] = {}
        path: list[int] = []
        current: int | None = start
        while current is not None and current not in seen:
            seen[current] = len(path)
            path.append(current)
            current = nodes[current].parent

        if current is None:
            return []
        cycle = path[seen[current] :]
        cycle.reverse()
        return cycle

    def _excluded_ancestor(
        self, nodes: dict[int, HierarchyNode], index: int, cycle_paths: dict[int, str]
    ) -> str:
        current = nodes[index].parent
        visited: set[int] = set()
        while current is not None and current not in cycle_paths and current not in visited:
            visited.add(current)
            current = nodes[current].parent
        return nodes[current].label if current is not None else "unknown"

    def _add_reference_edges(
        self, nodes: dict[int, HierarchyNode], owners: dict[str, int]
    ) -> None:
        added = skipped = 0
        for node in sorted(nodes.values(), key=lambda n: n.index):
            for legacy_id in node.item.reference_dependencies:
                target = owners.get(self.key(legacy_id))
                if target is None or target == node.index or target not in nodes:
                    continue
                if target in node.dependencies:
                    continue
                if self._reaches(nodes, target, node.index):
                    skipped += 1
                    logger.warning(
                        "Skipped reference ordering hint that would close a cycle",
                        item=node.label,
                        references=nodes[target].label,
                    )
                    continue
                node.dependencies.add(target)
                nodes[target].dependents.add(node.index)
                added += 1

        if added or skipped:
            logger.debug("Reference ordering hints applied", added=added, skipped=skipped)

    def _reaches(self, nodes: dict[int, HierarchyNode], start: int, target: int) -> bool:
        """True if `target` is reachable from `start` by following dependencies."""
        stack = [start]
        visited: set[int] = set()
        while stack:
            current = stack.pop()
            if current == target:
                return True
            if current in visited:
                continue
            visited.add(current)
            stack.extend(nodes[current].dependencies)
        return False
