"""
Concurrent health checker for Ollama-style ``/api/tags`` endpoints.
"""

__version__ = "2.2.0"
