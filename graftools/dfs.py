"""Depth-first ordering of a (part of a) GrAF graph.

Used as a workaround for floating nodes in MASC: the ordering tells which
real leaf node comes right before or after a node that has no anchor of its
own in the primary text.
"""
from graftools.graph import is_floating, is_leaf, outbound_nodes, root_of


class DepthFirstSearch:
    """Orders the tree that contains ``start_node``, starting from its root."""

    def __init__(self, graph, start_node):
        self.graph = graph
        self.root = root_of(start_node)
        self.order = [] # position -> node
        self._index = {} # node id -> position
        self._visited = set()
        self._dfs(self.root)

    def _dfs(self, source):
        # iterative so deep trees don't hit the recursion limit
        stack = [source]
        while stack:
            node = stack.pop()
            if node.id in self._visited:
                continue
            self._visited.add(node.id)
            self._index[node.id] = len(self.order)
            self.order.append(node)
            for child in reversed(outbound_nodes(node)):
                if child.id not in self._visited:
                    stack.append(child)

    def is_visited(self, node):
        return node.id in self._visited

    def index_of(self, node):
        return self._index.get(node.id)

    def preceding_leaf(self, node):
        """The closest non-floating leaf before ``node`` in DFS order, or None."""
        position = self.index_of(node)
        if position is None:
            return None
        for candidate in reversed(self.order[:position]):
            if is_leaf(candidate) and not is_floating(candidate):
                return candidate
        return None

    def succeeding_leaf(self, node):
        """The closest non-floating leaf after ``node`` in DFS order, or None."""
        position = self.index_of(node)
        if position is None:
            return None
        for candidate in self.order[position + 1:]:
            if is_leaf(candidate) and not is_floating(candidate):
                return candidate
        return None
