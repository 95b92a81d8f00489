"""
QuickFolio — Files and Folios record keeping.

Packages:
    engine    config, errors, structured logging
    db        SQLAlchemy models and sessions
    records   request payload schemas
    services  CRUD services
    api       request handlers and the FastAPI server
    table     filter/sort/select/export engine over record lists
"""

__version__ = "1.0.0"
__all__ = ["engine", "db", "records", "services", "api", "table", "client"]
