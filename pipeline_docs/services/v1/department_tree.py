# pipeline_docs/services/v1/department_tree.py
"""
In-memory view of one service's department hierarchy.

Nodes live in a dict keyed by department id and point at their parent by id.
Parent links are validated here before they are written, so a cycle can
never reach the database through the service layer.
"""
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Optional

from common import ValidationFailedError
from pipeline_docs.db.models import Department


@dataclass
class DepartmentNode:
    department_id: str
    parent_id: Optional[str]
    level: int


class DepartmentTree:
    def __init__(self, service_id: str, nodes: Iterable[DepartmentNode] = ()):
        self.service_id = service_id
        self._nodes: dict[str, DepartmentNode] = {n.department_id: n for n in nodes}

    @classmethod
    def from_departments(cls, service_id: str, departments: Iterable[Department]) -> "DepartmentTree":
        return cls(
            service_id,
            (
                DepartmentNode(d.department_id, d.parent_id, d.level)
                for d in departments
                if d.service_id == service_id
            ),
        )

    def __contains__(self, department_id: object) -> bool:
        return department_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, department_id: str) -> DepartmentNode:
        return self._nodes[department_id]

    def children(self, department_id: str) -> list[str]:
        return [n.department_id for n in self._nodes.values() if n.parent_id == department_id]

    def ancestors(self, department_id: str) -> list[str]:
        """Parent chain, nearest first. Raises on a cycle already in the data."""
        chain: list[str] = []
        seen = {department_id}
        current = self._nodes[department_id].parent_id
        while current is not None:
            if current in seen:
                raise ValidationFailedError(
                    "Department hierarchy contains a cycle",
                    details={"department_id": current},
                )
            seen.add(current)
            chain.append(current)
            parent = self._nodes.get(current)
            current = parent.parent_id if parent else None
        return chain

    def descendants(self, department_id: str) -> list[str]:
        """Breadth-first, excluding the department itself."""
        result: list[str] = []
        queue = deque(self.children(department_id))
        seen = {department_id}
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            queue.extend(self.children(current))
        return result

    def level_for_parent(self, department_id: Optional[str], parent_id: Optional[str]) -> int:
        """
        Level a department gets under `parent_id`, after checking the parent
        is in this service and is not the department or one of its
        descendants. Pass department_id=None for a department not yet created.
        """
        if parent_id is None:
            return 1

        if parent_id not in self._nodes:
            raise ValidationFailedError(
                "Parent department must belong to the same service",
                details={"parent_id": parent_id, "service_id": self.service_id},
            )

        if department_id is not None:
            if parent_id == department_id:
                raise ValidationFailedError("Department cannot be its own parent")
            if department_id in self.ancestors(parent_id):
                raise ValidationFailedError(
                    "Moving the department under its own descendant would create a cycle",
                    details={"department_id": department_id, "parent_id": parent_id},
                )

        return self._nodes[parent_id].level + 1

    def attach(self, department_id: str, parent_id: Optional[str]) -> dict[str, int]:
        """
        Set the parent of a department (adding it if new) and recompute the
        levels of its whole subtree.

        Returns:
            department_id -> new level for every node whose level changed
        """
        known = department_id in self._nodes
        level = self.level_for_parent(department_id if known else None, parent_id)

        if known:
            node = self._nodes[department_id]
            node.parent_id = parent_id
        else:
            node = DepartmentNode(department_id, parent_id, level)
            self._nodes[department_id] = node

        changed: dict[str, int] = {}
        if node.level != level or not known:
            node.level = level
            changed[department_id] = level

        for descendant_id in self.descendants(department_id):
            descendant = self._nodes[descendant_id]
            parent = self._nodes[descendant.parent_id]
            new_level = parent.level + 1
            if descendant.level != new_level:
                descendant.level = new_level
                changed[descendant_id] = new_level

        return changed


__all__ = ["DepartmentTree", "DepartmentNode"]
