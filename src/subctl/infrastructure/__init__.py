"""Infrastructure layer — entitlement store, migrations, notification port.

This layer depends on stdlib and third-party libs (SQLAlchemy, Alembic, httpx).
The service layer bridges between domain rules and infrastructure.
"""
