"""A small directed property graph holding glTF and extension nodes.

Nodes carry a weight and are joined by named, ordered edges. Extension
nodes keep their weight as JSON bytes, decoded on demand by ``read``.
"""

import json
from dataclasses import dataclass
from typing import Any, ClassVar

_NODE_CHILD = "Node/Child"
_NODE_MESH = "Node/Mesh"
_MESH_PRIMITIVE = "Mesh/Primitive"
_PRIMITIVE_MATERIAL = "Primitive/Material"
_DOCUMENT_NODE = "Document/Node"
_DOCUMENT_MESH = "Document/Mesh"
_DOCUMENT_MATERIAL = "Document/Material"
_DOCUMENT_TEXTURE = "Document/Texture"
_EXTENSION_PREFIX = "Extension/"


@dataclass(frozen=True)
class _Edge:
    source: int
    target: int
    name: str


class Graph:
    """Nodes with weights, joined by named edges kept in insertion order."""

    def __init__(self) -> None:
        self._weights: dict[int, Any] = {}
        self._edges: list[_Edge] = []
        self._next_index = 0

    def _require(self, index: int) -> None:
        if index not in self._weights:
            raise KeyError(f"no node with index {index}")

    def add_node(self, weight) -> int:
        """Add a node and return its index."""
        index = self._next_index
        self._next_index += 1
        self._weights[index] = weight
        return index

    def weight(self, index):
        """Return the weight stored on a node."""
        self._require(index)
        return self._weights[index]

    def set_weight(self, index, weight) -> None:
        """Replace the weight stored on a node."""
        self._require(index)
        self._weights[index] = weight

    def add_edge(self, source, target, name) -> None:
        """Add a named edge from ``source`` to ``target``."""
        self._require(source)
        self._require(target)
        self._edges.append(_Edge(source, target, name))

    def remove_edge(self, source, target, name) -> bool:
        """Remove the first matching edge; return whether one was found."""
        wanted = _Edge(source, target, name)
        try:
            self._edges.remove(wanted)
        except ValueError:
            return False
        return True

    def targets(self, source, name) -> list[int]:
        """Targets of the edges with this name leaving ``source``, in order."""
        return [e.target for e in self._edges if e.source == source and e.name == name]

    def sources(self, target, name) -> list[int]:
        """Sources of the edges with this name entering ``target``, in order."""
        return [e.source for e in self._edges if e.target == target and e.name == name]

    def node_indices(self) -> list[int]:
        """Indices of all nodes, in creation order."""
        return list(self._weights)


@dataclass(frozen=True, order=True)
class PropertyNode:
    """A typed handle on one graph node.

    Subclasses with a ``weight_type`` store that record as JSON bytes;
    the others store a plain dictionary tagged with their ``kind``.
    """

    index: int

    weight_type: ClassVar[Any] = None
    kind: ClassVar[str] = "Bytes"
    extension_name: ClassVar[str | None] = None

    @classmethod
    def _encode(cls, weight) -> bytes:
        if not isinstance(weight, cls.weight_type):
            raise TypeError(
                f"{cls.__name__} expects a {cls.weight_type.__name__} weight"
            )
        return json.dumps(weight.to_json(), separators=(",", ":")).encode()

    @classmethod
    def create(cls, graph):
        """Add a node holding the default weight and return its handle."""
        if cls.weight_type is None:
            weight: Any = {"kind": cls.kind}
        else:
            weight = cls._encode(cls.weight_type())
        return cls(graph.add_node(weight))

    def read(self, graph):
        """Return the node's weight."""
        raw = graph.weight(self.index)
        if self.weight_type is None:
            return dict(raw)
        if not raw:
            return self.weight_type()
        try:
            return self.weight_type.from_json(json.loads(raw))
        except (ValueError, TypeError) as exc:
            raise ValueError(f"failed to deserialize {self.weight_type.__name__}") from exc

    def write(self, graph, weight) -> None:
        """Store a new weight on the node."""
        if self.weight_type is None:
            graph.set_weight(self.index, {**weight, "kind": self.kind})
        else:
            graph.set_weight(self.index, self._encode(weight))

    def find_property(self, graph, name, kind):
        """The single target of edges called ``name``, as ``kind``, or None."""
        targets = graph.targets(self.index, name)
        return kind(targets[0]) if targets else None

    def set_property(self, graph, name, target) -> None:
        """Point the single edge called ``name`` at ``target``, or clear it."""
        for old in graph.targets(self.index, name):
            graph.remove_edge(self.index, old, name)
        if target is not None:
            graph.add_edge(self.index, target.index, name)

    def find_properties(self, graph, name, kind) -> list:
        """All targets of edges called ``name``, as ``kind``, in order."""
        return [kind(index) for index in graph.targets(self.index, name)]

    def add_property(self, graph, name, target) -> None:
        """Add an edge called ``name`` to ``target``."""
        graph.add_edge(self.index, target.index, name)

    def remove_property(self, graph, name, target) -> None:
        """Remove an edge called ``name`` to ``target`` if present."""
        graph.remove_edge(self.index, target.index, name)


class Texture(PropertyNode):
    kind = "Texture"


class Material(PropertyNode):
    kind = "Material"


class Mesh(PropertyNode):
    kind = "Mesh"

    def primitives(self, graph) -> list["Primitive"]:
        return self.find_properties(graph, _MESH_PRIMITIVE, Primitive)

    def add_primitive(self, graph, primitive) -> None:
        self.add_property(graph, _MESH_PRIMITIVE, primitive)

    def nodes(self, graph) -> list["GltfNode"]:
        """Scene nodes that use this mesh."""
        return [GltfNode(i) for i in graph.sources(self.index, _NODE_MESH)]


class Primitive(PropertyNode):
    kind = "Primitive"

    def material(self, graph) -> Material | None:
        return self.find_property(graph, _PRIMITIVE_MATERIAL, Material)

    def set_material(self, graph, material) -> None:
        self.set_property(graph, _PRIMITIVE_MATERIAL, material)

    def mesh(self, graph) -> Mesh | None:
        """The mesh that holds this primitive."""
        owners = graph.sources(self.index, _MESH_PRIMITIVE)
        return Mesh(owners[0]) if owners else None


class GltfNode(PropertyNode):
    kind = "Node"

    def children(self, graph) -> list["GltfNode"]:
        return self.find_properties(graph, _NODE_CHILD, GltfNode)

    def add_child(self, graph, child) -> None:
        self.add_property(graph, _NODE_CHILD, child)

    def mesh(self, graph) -> Mesh | None:
        return self.find_property(graph, _NODE_MESH, Mesh)

    def set_mesh(self, graph, mesh) -> None:
        self.set_property(graph, _NODE_MESH, mesh)


class GltfDocument(PropertyNode):
    kind = "Document"

    def nodes(self, graph) -> list[GltfNode]:
        return self.find_properties(graph, _DOCUMENT_NODE, GltfNode)

    def add_node(self, graph, node) -> None:
        self.add_property(graph, _DOCUMENT_NODE, node)

    def meshes(self, graph) -> list[Mesh]:
        return self.find_properties(graph, _DOCUMENT_MESH, Mesh)

    def add_mesh(self, graph, mesh) -> None:
        self.add_property(graph, _DOCUMENT_MESH, mesh)

    def materials(self, graph) -> list[Material]:
        return self.find_properties(graph, _DOCUMENT_MATERIAL, Material)

    def add_material(self, graph, material) -> None:
        self.add_property(graph, _DOCUMENT_MATERIAL, material)

    def textures(self, graph) -> list[Texture]:
        return self.find_properties(graph, _DOCUMENT_TEXTURE, Texture)

    def add_texture(self, graph, texture) -> None:
        self.add_property(graph, _DOCUMENT_TEXTURE, texture)

    def texture_index(self, graph, texture) -> int | None:
        """Position of ``texture`` in the document, or None."""
        textures = self.textures(graph)
        return textures.index(texture) if texture in textures else None

    def add_extension(self, graph, extension) -> None:
        """Attach an extension node, replacing one of the same name."""
        name = extension.extension_name
        if name is None:
            raise ValueError(f"{type(extension).__name__} is not an extension")
        self.set_property(graph, _EXTENSION_PREFIX + name, extension)

    def get_extension(self, graph, kind):
        """The attached extension of type ``kind``, or None."""
        if kind.extension_name is None:
            raise ValueError(f"{kind.__name__} is not an extension")
        return self.find_property(graph, _EXTENSION_PREFIX + kind.extension_name, kind)