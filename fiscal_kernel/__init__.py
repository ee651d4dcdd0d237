"""
Fiscal Kernel

Core of the producer tax-compliance portal:
- Obligation recurrence and reminder derivation (pure, deterministic)
- Draft fiscal document lifecycle with accountant review
- Finalization into immutable, checksum-keyed official documents
- Per-issuer document numbering under row locks
"""

__version__ = "0.1.0"
