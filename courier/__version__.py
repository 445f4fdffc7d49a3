__title__ = "courier"
__description__ = "A fluent HTTP request builder with content-type driven response buffering."
__version__ = "0.4.0"
