"""
Example resolver script for ScriptResolved mode.

Maps ``?ID=<scene>`` to a cloud-hosted RGB COG read through /vsicurl.
Point a config file at it with ``Resolver=vortex_resolver.py``, or name it
``<basename>.py`` next to the program.
"""

from urllib.parse import parse_qs

prefix = "/vsicurl/https://parc.s3.us-west-2.amazonaws.com/vortex/rgb/"
suffix = "_rgb.tif"


def query_handler(query_string):
    params = parse_qs(query_string)
    return prefix + params["ID"][0] + suffix
