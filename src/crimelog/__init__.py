"""
Crime Log Reconstruction
========================

Turns campus crime log PDFs into structured incident records.

Main components:
- Fragment extraction from PDF pages
- Fuzzy line reconstruction from positioned text fragments
- Label-driven field parsing into incident entries
- JSON export
"""

__version__ = "1.0.0"
__author__ = "Crime Log Reconstruction Team"
