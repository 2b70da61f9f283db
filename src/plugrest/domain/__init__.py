"""Domain layer: identifier grammars, timestamps, and wire enums.

Pure functions only: no I/O, no logging, no third-party imports.
"""
