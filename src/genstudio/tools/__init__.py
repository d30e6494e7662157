from .studio import Studio, DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL

__all__ = ["Studio", "DEFAULT_IMAGE_MODEL", "DEFAULT_TEXT_MODEL"]
