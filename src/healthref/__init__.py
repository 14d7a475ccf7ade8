"""
HealthRef - evidence-grounded health recommendations from research papers.

This package searches literature and trusted health sites for a condition,
asks a generative model to extract foods and activities, and keeps only the
claims that can be found verbatim in the quoted source excerpts.
"""

__version__ = "0.1.0"
