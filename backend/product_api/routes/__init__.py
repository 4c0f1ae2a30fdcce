# Routes package init
"""
Product API: API Routes Package
==================================

Route Inventory:
    - health.py:    GET /                        (health check)
    - products.py:  GET/POST /api/products       (list, create)
                    GET/PUT/DELETE /api/products/{id}

Routes stay thin: extract request data, call ProductService, return.
"""
