"""Domain errors raised by the services layer.

Each error carries the HTTP status it maps to; ``main.py`` turns them into
JSON responses. Geometry errors from ``earthlord_shared`` are handled there
as well.
"""

from uuid import UUID


class EarthLordError(Exception):
    """Base class for domain errors."""

    status_code = 400
    error_type = "EarthLordError"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "error_type": self.error_type}


class NotFound(EarthLordError):
    status_code = 404
    error_type = "NotFound"


class TemplateNotFound(NotFound):
    error_type = "TemplateNotFound"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Building template '{template_id}' does not exist")


class NotOwner(EarthLordError):
    status_code = 403
    error_type = "NotOwner"


class PointOutsideTerritory(EarthLordError):
    status_code = 422
    error_type = "PointOutsideTerritory"

    def __init__(self, territory_id: UUID):
        self.territory_id = territory_id
        super().__init__("Building location is outside the territory boundary")


class TemplateLimitReached(EarthLordError):
    status_code = 409
    error_type = "TemplateLimitReached"

    def __init__(self, template_id: str, limit: int):
        self.template_id = template_id
        self.limit = limit
        super().__init__(f"Territory already has the maximum of {limit} '{template_id}'")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "limit": self.limit}


class MaxLevelReached(EarthLordError):
    status_code = 409
    error_type = "MaxLevelReached"

    def __init__(self, max_level: int):
        self.max_level = max_level
        super().__init__(f"Building is already at max level {max_level}")


class InsufficientResources(EarthLordError):
    status_code = 409
    error_type = "InsufficientResources"

    def __init__(self, missing: dict[str, int]):
        self.missing = dict(missing)
        items = ", ".join(f"{name} x{qty}" for name, qty in sorted(self.missing.items()))
        super().__init__(f"Insufficient resources: {items}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "missing_resources": self.missing}


class InvalidStatusForTransition(EarthLordError):
    status_code = 409
    error_type = "InvalidStatusForTransition"

    def __init__(self, current: str, action: str):
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} while status is '{current}'")


class InvalidSessionState(InvalidStatusForTransition):
    error_type = "InvalidSessionState"


class ConcurrentModification(EarthLordError):
    status_code = 409
    error_type = "ConcurrentModification"


class PersistenceError(EarthLordError):
    status_code = 503
    error_type = "PersistenceError"
