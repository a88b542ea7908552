"""
Geographic primitives for the map viewport: bounding boxes, projections, spatial index.
"""
