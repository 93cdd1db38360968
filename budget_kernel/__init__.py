"""
Budget Kernel

Persistence and domain substrate for the responsibility-centre budget tracker:
- Responsibility centres owning fiscal years
- Money types, categories and spending categories per fiscal year
- Funding, spending, procurement, training and travel line items
- Allocations, events, quotes, invoices and binary file attachments
"""

__version__ = "0.1.0"
