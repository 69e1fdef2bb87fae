"""DA Rack — schema-fixed relational data access over a single action endpoint.

Callers POST an action name plus a JSON payload naming a table and column
values.  The service validates identifiers, builds parameterised SQL for a
fixed catalog of operations and answers with an ack/nack envelope.

Layers (bottom to top):
    1. Query     — identifier validation, value normalisation, SQL building
    2. Storage   — aiosqlite-backed store with atomic batches
    3. Dispatch  — closed action catalog, outcome classification
    4. API       — envelope codec, FastAPI routes, CLI
"""

__version__ = "0.0.1"
__service__ = "da-cloud-cfd1-rack"

__all__ = ["__version__", "__service__"]
