"""Equipment class registry.

Central registry that manages all supported equipment classes.
Allows lookup by class ID and provides discovery for facility validation.
"""

from .base import EquipmentProfile


class EquipmentClassRegistry:
    """Central registry for all supported equipment classes."""

    _classes: dict[str, type[EquipmentProfile]] = {}

    @classmethod
    def register(cls, class_id: str):
        """Decorator to register an equipment class profile.

        Args:
            class_id: Unique identifier (e.g., "rooftop_unit", "heat_pump")

        Returns:
            Decorator function
        """

        def decorator(profile_class: type[EquipmentProfile]):
            cls._classes[class_id] = profile_class
            return profile_class

        return decorator

    @classmethod
    def get_class(cls, class_id: str) -> EquipmentProfile:
        """Get equipment class profile instance by ID.

        Args:
            class_id: Equipment class identifier

        Returns:
            EquipmentProfile instance

        Raises:
            ValueError: If class not found
        """
        if class_id not in cls._classes:
            raise ValueError(f"Unknown equipment class: {class_id}")
        return cls._classes[class_id]()

    @classmethod
    def get_supported_classes(cls) -> list[str]:
        """Get list of all supported class IDs."""
        return list(cls._classes.keys())
