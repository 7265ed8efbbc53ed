"""Read VRM 0.0 avatars: schema records, property graph, MToon materials, first-person helpers and spring bones."""

__version__ = "0.1.0"