"""Data stores for persistence and queue transport.

Stores handle:
- PostgreSQL: DB session, ORM operations
- Redis: durable FIFO queue of score items
- Queue backends: transport-agnostic push/pop/size/clear used by processors

No business/statistics logic in stores - that belongs in services.
"""
