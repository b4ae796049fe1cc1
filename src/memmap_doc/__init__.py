"""
memmap-doc — memory map elaboration

File: src/memmap_doc/__init__.py

Purpose
- Package root. Load register memory maps, resolve every field's address, access
  and representable range, and write the elaborated document back out.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
