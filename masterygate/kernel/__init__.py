"""
Kernel - domain records, errors, concept catalog and persistence.
"""
