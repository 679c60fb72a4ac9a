"""
Geographic primitives: bounding boxes, viewport bounds, Web Mercator, regions.
"""
