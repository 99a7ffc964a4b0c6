"""Deterministic node placement.

Two modes: a compact 5-column grid ordered by longest-path layer, and a layered
left-to-right / top-to-bottom flow. Both are pure functions of topology; saved
positions are only replaced by an explicit organize.
"""
