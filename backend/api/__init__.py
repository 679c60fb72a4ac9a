"""
JSON shapes returned by the HTTP surface.
"""
