"""
Repository behaviors.

Importing this package registers the built-in behaviors, so they can be
attached by name ("ShadowTranslate", or its alias "Translate").
"""

from shadow_translate.behaviors.base import Behavior, BehaviorRegistry, register_behavior
from shadow_translate.behaviors.shadow_translate import ShadowTranslateBehavior

__all__ = ["Behavior", "BehaviorRegistry", "ShadowTranslateBehavior", "register_behavior"]
