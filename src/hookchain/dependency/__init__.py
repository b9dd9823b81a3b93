"""Constraint graph for hook ordering."""

from .graph import HookGraph, HookNode

__all__ = [
    "HookGraph",
    "HookNode",
]
