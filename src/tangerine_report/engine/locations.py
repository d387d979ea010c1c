"""Location id to display name resolution.

Location subtests store the ids picked at each level (county, zone,
school...). The group's location list is a tree of
``{id: {label, children: {...}}}`` nodes; ids are unique across levels, so
the tree is flattened once into an id -> label map.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class LocationResolver:
    """Resolve location ids against a location list document."""

    def __init__(self, location_list: dict[str, Any]) -> None:
        self._labels: dict[str, str] = {}
        self._index(location_list.get("locations") or {})
        logger.debug("Indexed %d locations", len(self._labels))

    def _index(self, nodes: Any) -> None:
        if isinstance(nodes, list):
            nodes = {str(node.get("id", "")): node for node in nodes if isinstance(node, dict)}
        if not isinstance(nodes, dict):
            return
        for node_id, node in nodes.items():
            if not isinstance(node, dict):
                continue
            label = node.get("label")
            if label is not None:
                self._labels[str(node.get("id", node_id))] = str(label)
            self._index(node.get("children"))

    def __len__(self) -> int:
        return len(self._labels)

    def resolve(self, location_id: Any) -> Any:
        """Return the label for an id, or the id itself when unknown."""
        return self._labels.get(str(location_id), location_id)
