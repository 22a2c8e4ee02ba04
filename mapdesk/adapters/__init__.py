"""Adapters layer - Concrete implementations of the ports.

Adapters connect the workflow core to databases, model services and
in-process caches. Each adapter implements one or more port protocols.
"""
