# File: shadow_translate/behaviors/base.py
"""
Behaviors and the per-repository behavior registry.

A behavior adds capabilities to a repository through lifecycle hooks
(before_find, before_save, after_save, save_failed, before_delete,
after_delete) and custom finders. Behaviors that fill the same role are
mutually exclusive.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, List, Optional, Tuple, Type, Union

from shadow_translate.core.exceptions import BehaviorConflictException, ConfigurationException

if TYPE_CHECKING:
    from shadow_translate.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)

HOOKS = ("before_find", "before_save", "after_save", "save_failed", "before_delete", "after_delete")


class Behavior:
    """
    Base class for repository behaviors.

    Class attributes:
        name: Capability name the behavior reports
        role: Role it fills; at most one behavior per role per repository
        aliases: Other names resolving to this behavior in add_behavior()
        finders: Finder name -> method name
    """

    name: ClassVar[str] = ""
    role: ClassVar[Optional[str]] = None
    aliases: ClassVar[Tuple[str, ...]] = ()
    finders: ClassVar[Dict[str, str]] = {}

    def __init__(self, repository: "BaseRepository", **options: Any):
        self.repository = repository
        self.options = options

    def initialize(self) -> None:
        """Called once the behavior is registered on the repository."""

    def before_find(self, plan) -> None:
        pass

    def before_save(self, entity) -> None:
        pass

    def after_save(self, entity) -> None:
        pass

    def save_failed(self, entity) -> None:
        """Called when a save is rolled back after before_save ran."""

    def before_delete(self, entity) -> None:
        pass

    def after_delete(self, entity) -> None:
        pass


_BEHAVIOR_CLASSES: Dict[str, Type[Behavior]] = {}


def register_behavior(cls: Type[Behavior]) -> Type[Behavior]:
    """Class decorator making a behavior loadable by name."""
    _BEHAVIOR_CLASSES[cls.name] = cls
    for alias in cls.aliases:
        _BEHAVIOR_CLASSES[alias] = cls
    return cls


def behavior_class(name: str) -> Type[Behavior]:
    try:
        return _BEHAVIOR_CLASSES[name]
    except KeyError:
        raise ConfigurationException(f"Unknown behavior '{name}'", details={"behavior": name})


class BehaviorRegistry:
    """Behaviors attached to one repository, in attachment order."""

    def __init__(self, repository: "BaseRepository"):
        self.repository = repository
        self._loaded: Dict[str, Behavior] = {}

    def load(self, behavior: Union[str, Type[Behavior]], **options: Any) -> Behavior:
        """
        Attach a behavior.

        Args:
            behavior: Behavior class or registered name
            **options: Behavior configuration

        Returns:
            The attached behavior instance

        Raises:
            BehaviorConflictException: If another behavior holds the same role
        """
        cls = behavior_class(behavior) if isinstance(behavior, str) else behavior

        if cls.name in self._loaded:
            logger.debug(f"Behavior {cls.name} already attached to {self.repository.alias}")
            return self._loaded[cls.name]

        if cls.role:
            existing = self.role(cls.role)
            if existing is not None:
                logger.warning(
                    f"Refusing {cls.name} on {self.repository.alias}: "
                    f"role '{cls.role}' held by {existing}"
                )
                raise BehaviorConflictException(cls.role, existing, cls.name)

        instance = cls(self.repository, **options)
        self._loaded[cls.name] = instance
        instance.initialize()
        logger.info(f"Attached behavior {cls.name} to {self.repository.alias}")
        return instance

    def unload(self, name: str) -> None:
        self._loaded.pop(name, None)

    def has(self, name: str) -> bool:
        return name in self._loaded

    def get(self, name: str) -> Optional[Behavior]:
        return self._loaded.get(name)

    def names(self) -> List[str]:
        return list(self._loaded)

    def role(self, role: str) -> Optional[str]:
        """Name of the behavior filling a role, if any."""
        for name, instance in self._loaded.items():
            if instance.role == role:
                return name
        return None

    def finder(self, finder: str) -> Optional[Callable]:
        for instance in self._loaded.values():
            method = instance.finders.get(finder)
            if method:
                return getattr(instance, method)
        return None

    def dispatch(self, hook: str, *args: Any) -> None:
        if hook not in HOOKS:
            raise ValueError(f"Unknown hook {hook}")
        for instance in list(self._loaded.values()):
            getattr(instance, hook)(*args)
