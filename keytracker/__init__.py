"""Key item cooldown tracker."""

__version__ = "0.1.0"
