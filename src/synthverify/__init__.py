"""
SynthVerify - curation core for synthetic training data.

Duplicate detection, optimistic per-item saves and cached session analytics
over a working collection of generated items.
"""

__version__ = "0.1.0"
