"""Database layer: async SQLAlchemy engine, ORM models, Redis client."""
