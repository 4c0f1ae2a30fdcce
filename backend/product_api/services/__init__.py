# Services package init
"""
Product API: Services Layer
==============================

Service Inventory:
    - ProductService: filter / projection / sort construction and the single
      MongoDB call behind each product endpoint

Services know nothing about HTTP; routes know nothing about MongoDB.
"""
