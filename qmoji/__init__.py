"""qmoji - save images as named emoji and recall them in chat."""

__version__ = "0.3.0"
__logo__ = "🖼️"
