"""
Services package for the change-event publisher.

This package provides the collection classifier, the Redis connection
manager, the event publisher and the host lifecycle hooks.
"""
