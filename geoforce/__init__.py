"""
geoforce: calculation engine for geotechnical engineering.

Pure, stateless calculation functions consumed by the GeoForce web
pages.  Each module takes a plain input record and returns a plain
result record; rendering, persistence and reporting live elsewhere.

Subpackages
-----------
slope
    Slope stability by limit equilibrium (Fellenius, Bishop simplified,
    Janbu simplified) with critical circle search.
"""

from geoforce import slope

__version__ = "0.1.0"

__all__ = [
    "slope",
]
