"""contaflow package.

Read-side core of the ContaFlow accounting-office dashboard: aggregators that
reduce client companies, tax obligations, corporate processes, partners,
invoices and monthly XML submission flags stored in MongoDB into the KPI
scalars shown on the dashboard.

Architecture:
- Records live in MongoDB; per-company data sits in dotted subcollections
- Dask delayed tasks fan sub-queries out over a bounded worker pool
- Pydantic models validate the records the aggregators read
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
