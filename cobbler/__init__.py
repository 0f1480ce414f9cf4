"""
Cobbler Workshop API

Backend for a shoe and bag repair shop: customer enquiries, the
pickup → service → billing → delivery workflow, and GST invoicing,
persisted in a PostgreSQL database.
"""

__version__ = "0.1.0"
