"""
Commission Kernel

Computes and persists the commission ledger for affiliate sales:
- Pure commission formula (breakdown + ledger-entry drafts)
- Transactional, idempotent ledger regeneration per sale
- Withholding tax applied per payee at entry level
- Read-only settlement statements and audit replay
"""

__version__ = "0.1.0"
