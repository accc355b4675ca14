"""
Well-known authorities, codes and extents.
"""

AUTHORITY_EPSG = "EPSG"
AUTHORITY_NONE = "NONE"

# EPSG codes
EPSG_WORLD_GEODETIC_SYSTEM = 4326
EPSG_WORLD_GEODETIC_SYSTEM_GEOGRAPHICAL_3D = 4979
EPSG_WEB_MERCATOR = 3857

# Codes registered under AUTHORITY_NONE for undefined systems
UNDEFINED_CARTESIAN = -1
UNDEFINED_GEOGRAPHIC = 0

WEB_MERCATOR_HALF_WORLD_WIDTH = 20037508.342789244
