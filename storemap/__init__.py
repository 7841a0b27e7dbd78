"""Store map backend - store mirror sync, geocoding and map feed"""
