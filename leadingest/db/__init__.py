"""PostgreSQL access: batched upserts, DDL and connections."""
