"""Protocol definitions for the navigable target."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol


class SignalKind(str, Enum):
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class NavigationSignal:
    """A navigation event reported by the target's host."""

    kind: SignalKind
    url: str = ""
    error: Optional[str] = None
    main_frame: bool = True


NavigationListener = Callable[[NavigationSignal], None]


class Target(Protocol):
    """
    Protocol for the single tab driving a batch run.

    Implementations wrap a real browser page (see ``PlaywrightTarget``);
    tests use in-memory fakes.
    """

    target_id: str

    async def current_url(self) -> str:
        """Return the address the target currently reports."""
        ...

    async def set_fragment(self, fragment: str) -> None:
        """
        Change the fragment inside the live document, without a reload.

        Raises:
            NavigationError: If the in-page update could not be performed
        """
        ...

    async def navigate(self, url: str) -> None:
        """
        Issue a navigation to ``url`` and return once it is issued.

        Completion and failure are reported through navigation listeners.
        """
        ...

    def add_navigation_listener(self, listener: NavigationListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        ...
