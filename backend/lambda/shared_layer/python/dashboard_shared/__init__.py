"""dashboard_shared: Shared core for the project dashboard Lambda.

Provides:
    - Airtable REST client (paginated list, single-record writes)
    - Field mapping tables between camelCase API names and Airtable fields
    - Project aggregation (linked-record denormalization)
    - Task / Cashflow mutation translation
    - HTTP response helpers with CORS
"""

__version__ = "1.0.0"
