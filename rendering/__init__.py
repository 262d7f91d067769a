# Rendering Package
from rendering.sink import Renderer, HtmlRenderer

__all__ = ["Renderer", "HtmlRenderer"]
