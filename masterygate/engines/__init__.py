"""
Engines - pure scoring, scheduling and gating logic.
"""
