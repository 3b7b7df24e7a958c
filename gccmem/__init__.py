"""
gccmem - Git-like Context Commit engine for a personal AI assistant.
"""

__version__ = "0.1.0"
__logo__ = "🌿"
