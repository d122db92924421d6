"""
Sales DWH
=========
CRM + ERP sales warehouse: raw → staging → analytics star schema.
"""

__version__ = "0.1.0"
