"""
Domain Layer

Pure business rules for storage namespaces, transfers, the quota ledger,
share links and rate limiting. No third-party imports.
"""
