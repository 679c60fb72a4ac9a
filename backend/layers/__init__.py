"""
Domain layer types, upstream payload ingestion and contractor filters.
"""
