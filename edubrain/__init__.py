"""eDU Brain tuition fee tracker."""

__version__ = "1.0.0"
