"""
Per-node data registry.

Associates arbitrary keyed data with render-target nodes without touching
the node API (controls record themselves and their validation result here).
"""

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class NodeDataRegistry:
    """node -> {key: value}. Nodes are keyed by identity."""

    def __init__(self):
        self._data: Dict[Any, Dict[str, Any]] = {}

    def set(self, node: Any, key: str, value: Any) -> None:
        self._data.setdefault(node, {})[key] = value

    def get(self, node: Any, key: str, default: Any = None) -> Any:
        return self._data.get(node, {}).get(key, default)

    def has(self, node: Any, key: str) -> bool:
        return key in self._data.get(node, {})

    def remove(self, node: Any, key: str) -> None:
        entries = self._data.get(node)
        if entries is None:
            return
        entries.pop(key, None)
        if not entries:
            del self._data[node]

    def get_keys(self, node: Any) -> List[str]:
        return list(self._data.get(node, {}))

    def get_all(self, node: Any) -> Dict[str, Any]:
        return dict(self._data.get(node, {}))

    def clear_node(self, node: Any) -> None:
        self._data.pop(node, None)

    def __contains__(self, node: Any) -> bool:
        return node in self._data

    def __len__(self) -> int:
        return len(self._data)
