"""i3 desktop installer for Arch Linux.

Core design goals:
- Idempotent package batches (install only what is missing, verify after)
- Partial failure is reported, not fatal
- Hardware-conditional NVIDIA setup with idempotent config writes
- Centralized logging
"""

__all__ = []
