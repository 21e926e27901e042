"""Trip planning engine: stop sequencing, ETAs and path geometry for delivery vehicles."""

__version__ = "0.1.0"
