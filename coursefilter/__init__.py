"""
coursefilter – filters and annotates the course list of a catalog response
before the page consumes it.
"""

__version__ = "0.1.0"
