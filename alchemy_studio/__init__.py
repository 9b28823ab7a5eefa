"""Digital Alchemy Studio: pixel-level image filters with a small HTTP studio."""

__version__ = "1.0.0"
