"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that multiple features use
(DB wiring, domain errors, geo math). Keep feature-specific SQL and business
logic in the corresponding feature package (e.g. `pins/`).
"""
