"""
Shared kernel: domain base classes, money and date ranges, the message bus
and unit-of-work plumbing used by the chalet engine.
"""
