"""Offline content pipeline for a lab website's publication records"""

__version__ = "1.0.0"
