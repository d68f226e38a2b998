"""
Connected Components

Union-find over arbitrary hashable nodes. Used by the duplicate detector to
group folders that share duplicate content, independent of the rule that
later accepts or rejects each group.

Author: TreeMirror Project
License: MIT
"""

from typing import Dict, Generic, Hashable, Iterable, List, Tuple, TypeVar

Node = TypeVar("Node", bound=Hashable)


class DisjointSet(Generic[Node]):
    """Disjoint-set forest with path compression and union by size."""

    def __init__(self, nodes: Iterable[Node] = ()):
        self._parent: Dict[Node, Node] = {}
        self._size: Dict[Node, int] = {}
        for node in nodes:
            self.add(node)

    def __contains__(self, node: Node) -> bool:
        return node in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def add(self, node: Node):
        if node not in self._parent:
            self._parent[node] = node
            self._size[node] = 1

    def find(self, node: Node) -> Node:
        root = node
        while self._parent[root] != root:
            root = self._parent[root]
        # Path compression
        while self._parent[node] != root:
            self._parent[node], node = root, self._parent[node]
        return root

    def union(self, a: Node, b: Node) -> Node:
        self.add(a)
        self.add(b)
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return root_a
        if self._size[root_a] < self._size[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        self._size[root_a] += self._size[root_b]
        return root_a

    def components(self) -> List[List[Node]]:
        """
        All components, each sorted, ordered by their smallest member.

        Nodes must be mutually comparable for the ordering to be defined.
        """
        groups: Dict[Node, List[Node]] = {}
        for node in self._parent:
            groups.setdefault(self.find(node), []).append(node)
        return sorted((sorted(members) for members in groups.values()), key=lambda m: m[0])


def connected_components(nodes: Iterable[Node], edges: Iterable[Tuple[Node, Node]]) -> List[List[Node]]:
    """
    Connected components of an undirected graph.

    Args:
        nodes: All nodes, including isolated ones
        edges: Node pairs; endpoints missing from ``nodes`` are added

    Returns:
        Sorted components ordered by their smallest member
    """
    forest: DisjointSet[Node] = DisjointSet(nodes)
    for a, b in edges:
        forest.union(a, b)
    return forest.components()
