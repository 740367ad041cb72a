from typing import Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class Presenter(Protocol):
    """Renders a tip. Owned by the widget UI, not by this package."""

    is_shown: bool

    def show(self, text: str, on_complete: Optional[Callable[[], None]] = None) -> None:
        ...

    def hide(self) -> None:
        ...

    def can_render(self) -> bool:
        ...
