"""Routing — template compilation, the frozen route table, and matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.
"""
