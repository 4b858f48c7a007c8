"""
TH Control - Source Package

Condominium administration for a townhouse community: residents and an
administrator record payments and expenses, browse reports and exchange
suggestions. The whole ledger lives in one remote JSON document that
every device pulls on login and pushes after each change.

DESIGN PRINCIPLES:
1. Local state is authoritative for the current device
2. Every change is applied locally first, then pushed
3. Sync failures are visible, never blocking
4. The remote store is swappable
"""

__version__ = "1.0.0"
__author__ = "TH Control Team"
