"""
image-subsetter: raster crop server for CGI and persistent HTTP transports

Serves rectangular sub-regions of rasters re-encoded as JPEG. Rasters come
from a single configured file, a filename template filled with a request ID,
or a resolver script evaluated against the query string.
"""
