"""Geometry validation errors."""


class GeometryError(ValueError):
    """Base class for geometry validation failures."""


class InvalidGeometry(GeometryError):
    """Geometry input is empty or malformed."""


class InsufficientPoints(GeometryError):
    """A polygon operation was attempted on fewer than 3 distinct points."""

    def __init__(self, count: int, required: int = 3):
        self.count = count
        self.required = required
        super().__init__(f"Polygon needs at least {required} distinct points, got {count}")
