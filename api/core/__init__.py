"""
Shared, cross-cutting code for the API.

`core/` holds the request pipeline (CORS policy, body limits, database
readiness gate, route loading, error translation) and small building blocks
every route module uses (DB wiring, settings, logging, the Ollama client).
Keep feature-specific SQL and business logic in the feature package
(e.g. `ledger/`).
"""
