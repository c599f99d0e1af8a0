from .cleanup_stars import cleanup_stars, find_stale_stars

__all__ = ["cleanup_stars", "find_stale_stars"]
