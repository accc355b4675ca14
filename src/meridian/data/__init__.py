"""
Built-in CRS definition tables, one JSON file per authority.
"""
