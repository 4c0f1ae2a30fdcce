# Middleware package init
"""
Product API: Middleware Package
==================================

    request_context.py: request ID (X-Request-ID) and the access log line
"""
