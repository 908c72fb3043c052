"""
Dispatch tables for ndassemble.

Also see backends.py
"""

from .utils import Dispatch

concatenate_lookup = Dispatch("concatenate")
nesting_lookup = Dispatch("nesting")
