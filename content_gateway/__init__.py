"""
Content Gateway: OpenAlex Best-OA-Location Artifact Service

Resolves a work identifier to a harvested PDF (or its parsed GROBID XML)
and serves it from the primary object store, falling back to the S3 backup.
"""

__version__ = "1.2.0"
