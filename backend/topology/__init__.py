"""
Boundary topology handling.

TopoJSON documents are fetched once per path, decoded into shapely polygons
per named object, and turned into border meshes for overlay rendering.
"""
