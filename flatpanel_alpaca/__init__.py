"""
ASCOM Alpaca Driver for the Prometheus Astro flat panel cover.

A Python-based middleware driver that bridges HTTP REST clients (NINA, Voyager, SGP)
with the flat panel's microcontroller via a USB serial line protocol.
"""

__version__ = "1.1.0"
__author__ = "PrometheusAstro"
