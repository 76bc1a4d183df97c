"""Glossary tooltips composed lazily from the image caches."""

import logging
from typing import Awaitable, Callable, Protocol

from .images import ImageResolver
from .models import GlossTerm, TooltipContent
from .viewer import ImageViewer

logger = logging.getLogger(__name__)


class TooltipInstance(Protocol):
    def set_content(self, content: TooltipContent) -> None: ...

    def hide(self) -> None: ...

    def destroy(self) -> None: ...


ShowHandler = Callable[[TooltipInstance], Awaitable[None]]
ImageClickHandler = Callable[[TooltipInstance], None]


class TooltipLayer(Protocol):
    """Positioning library: one instance per reference element."""

    def attach(
        self,
        term: GlossTerm,
        on_show: ShowHandler,
        on_image_click: ImageClickHandler,
    ) -> TooltipInstance: ...


class TooltipManager:
    def __init__(
        self,
        resolver: ImageResolver,
        viewer: ImageViewer,
        layer: TooltipLayer | None = None,
    ) -> None:
        self.resolver = resolver
        self.viewer = viewer
        self.layer = layer
        self.instances: dict[str, TooltipInstance] = {}
        self._shown: dict[str, TooltipContent] = {}

    @property
    def enabled(self) -> bool:
        return self.layer is not None

    def unbind(self) -> None:
        for instance in self.instances.values():
            instance.destroy()
        self.instances.clear()
        self._shown.clear()

    def bind(self, terms: list[GlossTerm]) -> int:
        """Attach one tooltip per term, replacing any earlier binding."""
        self.unbind()
        if self.layer is None:
            logger.debug("Tooltip layer unavailable; glossary tooltips disabled")
            return 0
        for term in terms:
            self.instances[term.key] = self.layer.attach(
                term,
                self._show_handler(term),
                self._click_handler(term),
            )
        return len(self.instances)

    def _show_handler(self, term: GlossTerm) -> ShowHandler:
        async def on_show(instance: TooltipInstance) -> None:
            content = await self.compose(term)
            self._shown[term.key] = content
            instance.set_content(content)

        return on_show

    def _click_handler(self, term: GlossTerm) -> ImageClickHandler:
        def on_image_click(instance: TooltipInstance) -> None:
            content = self._shown.get(term.key)
            if content is not None:
                self.on_image_click(instance, content)

        return on_image_click

    async def compose(self, term: GlossTerm) -> TooltipContent:
        """Build tooltip content from the freshest cache state."""
        url = None
        if term.image:
            url = await self.resolver.resolve(term.image)
        if url:
            self.resolver.preload(url)
        return TooltipContent(text=term.text, image_url=url, image_alt=term.image_alt)

    def on_image_click(self, instance: TooltipInstance, content: TooltipContent) -> None:
        if not content.image_url:
            return
        self.viewer.open(content.image_url, content.image_alt)
        instance.hide()
