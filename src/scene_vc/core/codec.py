"""Scene snapshot codec: capture and restore scenes, render thumbnails."""

import base64
import io
import logging
from typing import Any, Dict, Optional, Tuple, Union

import pydantic
from PIL import Image, ImageColor, ImageDraw

from scene_vc.config import ThumbnailSettings
from scene_vc.core.scene import SceneGraph
from scene_vc.errors import SceneVCError, SerializationError
from scene_vc.models.scene import (
    EllipseObject,
    ImageObject,
    SceneDocument,
    SceneObjectBase,
    TextObject,
)

logger = logging.getLogger(__name__)

THUMBNAIL_PREFIX = "data:image/png;base64,"
_PLACEHOLDER_COLOR = (160, 160, 160)


def parse_document(data: Any) -> SceneDocument:
    """Validate a raw document into the scene model."""
    if isinstance(data, SceneDocument):
        return data
    if not isinstance(data, dict):
        raise SerializationError(
            f"Scene document must be an object, got {type(data).__name__}"
        )
    try:
        return SceneDocument.from_dict(data)
    except pydantic.ValidationError as e:
        raise SerializationError(f"Unexpected scene content: {e}") from e


class SceneCodec:
    """Converts between the live scene and commit snapshots."""

    def __init__(self, thumbnail: Optional[ThumbnailSettings] = None):
        self.thumbnail_settings = thumbnail or ThumbnailSettings()

    def capture(self, scene: SceneGraph) -> Tuple[SceneDocument, str]:
        """Snapshot the scene and render a preview.

        A thumbnail failure yields an empty thumbnail, never an error.
        """
        try:
            raw = scene.export_document()
        except SceneVCError:
            raise
        except (TypeError, ValueError, KeyError) as e:
            raise SerializationError(f"Could not read scene: {e}") from e

        document = parse_document(raw)
        return document, self.safe_thumbnail(document)

    def restore(self, scene: SceneGraph, snapshot: Union[SceneDocument, Dict[str, Any]]) -> None:
        """Replace the scene's contents with the snapshot."""
        document = parse_document(snapshot)
        try:
            scene.load_document(document.to_dict())
        except SceneVCError:
            raise
        except (TypeError, ValueError, KeyError) as e:
            raise SerializationError(f"Could not restore scene: {e}") from e
        logger.debug("Restored scene with %d objects", len(document))

    def safe_thumbnail(self, document: SceneDocument) -> str:
        try:
            return self.render_thumbnail(document)
        except Exception as e:
            logger.warning("Thumbnail generation failed: %s", e)
            return ""

    def render_thumbnail(self, document: SceneDocument) -> str:
        """Draw a downsampled preview of the document as a PNG data URL."""
        settings = self.thumbnail_settings
        background = _color(document.background) or _color(settings.background)
        image = Image.new("RGB", (settings.width, settings.height), background or "white")
        draw = ImageDraw.Draw(image)

        extent_w, extent_h = _scene_extent(document)
        scale = min(settings.width / extent_w, settings.height / extent_h)

        for obj in document.objects:
            _draw_object(draw, obj, scale)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG", optimize=True)
        return THUMBNAIL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


def decode_thumbnail(thumbnail: str) -> Image.Image:
    """Load a thumbnail data URL back into an image."""
    if not thumbnail.startswith(THUMBNAIL_PREFIX):
        raise SerializationError("Not a PNG data URL")
    raw = base64.b64decode(thumbnail[len(THUMBNAIL_PREFIX):])
    return Image.open(io.BytesIO(raw))


def _color(paint: Any) -> Optional[Tuple[int, ...]]:
    # Gradients and patterns are dicts; they are not drawn in previews.
    if not isinstance(paint, str) or not paint or paint == "transparent":
        return None
    try:
        return ImageColor.getcolor(paint, "RGB")
    except ValueError:
        return None


def _size(obj: SceneObjectBase) -> Tuple[float, float]:
    width = obj.width
    height = obj.height
    if isinstance(obj, EllipseObject):
        if width is None:
            width = 2 * (obj.radius or obj.rx or 0)
        if height is None:
            height = 2 * (obj.radius or obj.ry or 0)
    return (
        float(width or 0) * float(obj.scale_x or 1),
        float(height or 0) * float(obj.scale_y or 1),
    )


def _scene_extent(document: SceneDocument) -> Tuple[float, float]:
    max_x, max_y = 1.0, 1.0
    for obj in document.objects:
        width, height = _size(obj)
        max_x = max(max_x, float(obj.left or 0) + width)
        max_y = max(max_y, float(obj.top or 0) + height)
    return max_x, max_y


def _draw_object(draw: ImageDraw.ImageDraw, obj: SceneObjectBase, scale: float) -> None:
    left = float(obj.left or 0) * scale
    top = float(obj.top or 0) * scale
    width, height = _size(obj)
    box = [left, top, left + max(width * scale, 1), top + max(height * scale, 1)]
    fill = _color(obj.fill)
    outline = _color(obj.stroke)

    if isinstance(obj, TextObject):
        draw.text((left, top), obj.text[:24], fill=fill or (0, 0, 0))
    elif isinstance(obj, EllipseObject):
        draw.ellipse(box, fill=fill, outline=outline)
    elif isinstance(obj, ImageObject):
        draw.rectangle(box, fill=_PLACEHOLDER_COLOR, outline=outline)
    else:
        draw.rectangle(box, fill=fill, outline=outline)
