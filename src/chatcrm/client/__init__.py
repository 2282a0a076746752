"""
Client-side controllers that drive the HTTP API.
"""
