"""Navigation of the driving target."""

from .coordinator import NavigationCoordinator, NavigationKind
from .protocols import NavigationListener, NavigationSignal, SignalKind, Target
from .urls import fragment_of, is_fragment_change, same_document, strip_fragment, urls_roughly_match

__all__ = [
    # Protocols
    "NavigationListener",
    "NavigationSignal",
    "SignalKind",
    "Target",
    # Coordinator
    "NavigationCoordinator",
    "NavigationKind",
    # URL helpers
    "fragment_of",
    "is_fragment_change",
    "same_document",
    "strip_fragment",
    "urls_roughly_match",
]
