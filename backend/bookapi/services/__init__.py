# Services package init
"""
BookAPI Backend - Services Layer
=================================

What:  Persistence access for the books resource.

Service Inventory:
    - BookGateway: list / get / create / update / delete against the books
      table through an async SQLAlchemy engine. Stateless apart from the
      engine, safe for concurrent use by many requests.

Routes receive the gateway through FastAPI dependency injection
(bookapi.dependencies.get_book_gateway), so tests can swap in a fake.
"""
