"""Job store adapters: in-memory (tests, single-process dev) and SQLAlchemy."""
