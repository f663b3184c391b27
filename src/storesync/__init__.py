"""storesync - paginated sync and local-store reconciliation for a commerce store client.

Packages:
    api/          - HTTP client, exceptions, resilience, database pool helpers
    sync/         - Domain entities, ports, coordination, use cases and adapters
    settings/     - Locally persisted per-site and general app settings
    view_models/  - Paginated list view models built on the sync layer
"""
