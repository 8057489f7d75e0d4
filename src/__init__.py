"""
Gemini Terminal Client

A small interactive terminal client for the Gemini protocol: it fetches
resources over TLS, renders gemtext with colors and numbered links, and
keeps back/forward navigation history for the session.
"""

__version__ = "1.0.0"
__author__ = "gemclient contributors"
__description__ = "Terminal client for the Gemini protocol"
