"""
Domain packages

Each domain follows the same layering: schemas (pydantic), repository
(database access), service (business rules) and router (FastAPI endpoints).
"""
