"""Infrastructure layer: storage adapters, caches and event sinks.

Implements the application interfaces; services never import from here.
"""
