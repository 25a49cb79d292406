"""
liteorm - Utilities
Configuration, logging, naming, timestamps and caching shared by all components.
"""
