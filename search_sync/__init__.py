"""Search Sync Service.

This service receives content change notifications from the CMS backend and
publishes them to a Redis stream for the search indexer.
"""

__version__ = "0.1.0"
