"""Domain models and calculations for the income tax return pipeline.

This package contains in-memory (Pydantic) models for ledger, income and
crypto trade records, the versioned statutory rule tables, and the pure
functions that turn those records into a computed return. They are
independent from persistence models so that tax logic and testing can evolve
without DB coupling.
"""

__all__ = [
    "base_types",
    "closing_inventory",
    "crypto_gains",
    "deductions",
    "errors",
    "filing_check",
    "income",
    "ledger",
    "loans",
    "payroll",
    "rules",
    "tax",
    "tax_return",
]
