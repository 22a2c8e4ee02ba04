"""Interaction boundary - typed component ids and response handling."""

from .actions import Action, ComponentId
from .dispatcher import ActionRouter, Responder, guarded, respond

__all__ = ["Action", "ActionRouter", "ComponentId", "Responder", "guarded", "respond"]
