"""Creative-studio image tools on top of the Gemini image API."""

__version__ = "0.1.0"
