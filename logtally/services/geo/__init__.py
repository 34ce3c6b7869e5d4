from .resolver import GeoResolution, GeoResolver, GeoStatus, open_reader

__all__ = ["GeoResolution", "GeoResolver", "GeoStatus", "open_reader"]
