"""Core package of the Gemini terminal client."""
