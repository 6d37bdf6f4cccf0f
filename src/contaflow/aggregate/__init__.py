"""Dashboard aggregators.

Each aggregator reads office records from MongoDB, applies a fixed predicate
(status set, date window, reporting period) and reduces the matches to one
value: a count, a currency sum, or a small summary record. Per-company reads
fan out through a bounded Dask worker pool (see `fanout`), and every
aggregator settles on a tagged state (see `state`).
"""
