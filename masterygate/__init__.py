"""
Mastery Gate - evidenced-mastery learning engine.
"""

__version__ = "1.0.0"
