"""
Product API: Application Package Initializer
===============================================

What: Marks the `product_api` directory as a Python package.
Who:  Imported by uvicorn (`product_api.main:app`), by `python -m product_api`
      and by the test suite.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │    ProductService (Query Building)  │  ← filter / projection / sort, one store call
    ├─────────────────────────────────────┤
    │         Schemas (Pydantic)          │  ← typed request bodies and responses
    ├─────────────────────────────────────┤
    │      MongoDatabase (Persistence)    │  ← AsyncMongoClient + products collection
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
