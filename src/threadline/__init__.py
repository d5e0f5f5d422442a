"""Threadline - threaded AI code review over line ranges"""

__version__ = "0.1.0"
