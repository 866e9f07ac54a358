"""omero-tiles: tiled retrieval of 5D pixel regions from OMERO.

Fetches rectangular (X, Y, C, Z, T) sub-regions of a remote pixel set in
bounded-size tiles and stitches them into numpy arrays.
"""

__version__ = "0.1.0"
