"""Dispatch layer — closed action catalog and outcome classification."""

from da_rack.dispatch.actions import Action
from da_rack.dispatch.dispatcher import ActionDispatcher, Outcome

__all__ = ["Action", "ActionDispatcher", "Outcome"]
